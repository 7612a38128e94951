from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from campusmart.schemas.base import CamelModel


class ListingCreate(CamelModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=100)
    sale_price: Optional[Decimal] = Field(default=None, ge=0)
    is_rentable: bool = False
    rental_price_per_day: Optional[Decimal] = Field(default=None, ge=0)


class ListingRead(CamelModel):
    listing_id: str
    owner_id: str
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    sale_price: Optional[Decimal] = None
    is_rentable: bool
    rental_price_per_day: Optional[Decimal] = None
    status: str
    created_at: datetime
