from datetime import datetime, timedelta, timezone

import pytest

from campusmart.core.errors import Expired, InvalidSignature
from campusmart.core.security import SessionIssuer, hash_password, verify_password


def test_password_hash_roundtrip():
    hashed = hash_password("s3cret", rounds=4)

    assert hashed != "s3cret"
    assert verify_password("s3cret", hashed)
    assert not verify_password("wrong", hashed)


def test_password_hashes_are_salted():
    assert hash_password("same", rounds=4) != hash_password("same", rounds=4)


def test_verify_password_against_garbage_hash():
    assert verify_password("pw", "not-a-bcrypt-hash") is False


def test_mint_and_validate(session_issuer):
    token = session_issuer.mint("user_1")

    assert session_issuer.validate(token) == "user_1"


def test_tokens_minted_back_to_back_differ(session_issuer):
    assert session_issuer.mint("user_1") != session_issuer.mint("user_1")


def test_token_signed_with_other_secret_is_rejected(session_issuer):
    other = SessionIssuer("another-secret")

    with pytest.raises(InvalidSignature):
        session_issuer.validate(other.mint("user_1"))


def test_tampered_token_is_rejected(session_issuer):
    header, _, signature = session_issuer.mint("user_1").split(".")
    _, other_payload, _ = session_issuer.mint("user_2").split(".")
    tampered = ".".join([header, other_payload, signature])

    with pytest.raises(InvalidSignature):
        session_issuer.validate(tampered)


def test_garbage_token_is_rejected(session_issuer):
    with pytest.raises(InvalidSignature):
        session_issuer.validate("not.a.token")


def test_expired_token_is_distinct_from_bad_signature():
    eight_days_ago = datetime.now(timezone.utc) - timedelta(days=8)
    issuer = SessionIssuer("test-secret", clock=lambda: eight_days_ago)

    with pytest.raises(Expired):
        issuer.validate(issuer.mint("user_1"))


def test_token_valid_until_seven_days():
    six_days_ago = datetime.now(timezone.utc) - timedelta(days=6)
    issuer = SessionIssuer("test-secret", clock=lambda: six_days_ago)

    assert issuer.validate(issuer.mint("user_1")) == "user_1"


def test_empty_secret_refused():
    with pytest.raises(ValueError):
        SessionIssuer("")
