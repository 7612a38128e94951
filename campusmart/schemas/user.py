from pydantic import EmailStr, Field, field_validator

from campusmart.schemas.base import CamelModel


class UserRegister(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)
    full_name: str = Field(min_length=1, max_length=255)


class OtpVerify(CamelModel):
    email: EmailStr
    otp: str = Field(min_length=1, max_length=6)

    @field_validator("otp", mode="before")
    @classmethod
    def _otp_as_text(cls, value):
        # some clients send the code as a number, which drops leading zeros
        if isinstance(value, int) and not isinstance(value, bool):
            return f"{value:06d}"
        return value


class OtpResend(CamelModel):
    email: EmailStr


class UserLogin(CamelModel):
    # plain str: a malformed email must fail like any other bad login (401)
    email: str
    password: str


class UserRead(CamelModel):
    user_id: str
    email: str
    full_name: str
    role: str
    is_verified: bool
    rating_average: float
    rating_count: int


class AuthResponse(CamelModel):
    token: str
    user: UserRead
