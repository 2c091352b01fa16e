from datetime import timedelta

import pytest
from jose import JWTError

from lapcms.core.config import Settings
from lapcms.core.security import (
    create_access_token,
    decode_access_token,
    extract_bearer_token,
    get_password_hash,
    verify_password,
)

settings = Settings(SECRET_KEY="unit-secret", BCRYPT_ROUNDS=4)


def test_password_roundtrip():
    hashed = get_password_hash("s3cret!", rounds=4)
    assert hashed != "s3cret!"
    assert verify_password("s3cret!", hashed)
    assert not verify_password("wrong", hashed)


def test_verify_password_rejects_garbage_hash():
    assert not verify_password("anything", "")
    assert not verify_password("anything", "not-a-bcrypt-hash")


def test_token_carries_identity_claims():
    token = create_access_token({"userId": 7, "email": "a@example.com"}, settings)
    payload = decode_access_token(token, settings)
    assert payload["userId"] == 7
    assert payload["email"] == "a@example.com"
    assert "exp" in payload


def test_expired_token_is_rejected():
    token = create_access_token({"userId": 7, "email": "a@example.com"}, settings, expires_delta=timedelta(seconds=-10))
    with pytest.raises(JWTError):
        decode_access_token(token, settings)


def test_token_signed_with_other_secret_is_rejected():
    token = create_access_token({"userId": 7, "email": "a@example.com"}, Settings(SECRET_KEY="other"))
    with pytest.raises(JWTError):
        decode_access_token(token, settings)


def test_token_without_identity_is_rejected():
    token = create_access_token({"sub": "a@example.com"}, settings)
    with pytest.raises(JWTError):
        decode_access_token(token, settings)


@pytest.mark.parametrize(
    "header, expected",
    [
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("bearer abc", None),
        ("Token abc", None),
        ("Bearer", None),
        (None, None),
    ],
)
def test_extract_bearer_token(header, expected):
    assert extract_bearer_token(header) == expected
