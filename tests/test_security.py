import pytest
from fastapi import HTTPException

from portfolio.core.security import (
    create_session_token,
    decode_session_token,
    generate_reset_token,
    hash_password,
    hash_reset_token,
    verify_password,
)


def test_password_hash_roundtrip():
    hashed = hash_password("correct horse")
    assert hashed.startswith("scrypt$")
    assert "correct horse" not in hashed
    assert verify_password("correct horse", hashed)
    assert not verify_password("battery staple", hashed)


def test_password_hash_is_salted():
    assert hash_password("same-password") != hash_password("same-password")


@pytest.mark.parametrize("stored", ["", "plaintext", "bcrypt$aa$bb"])
def test_verify_rejects_unknown_hash_formats(stored):
    assert not verify_password("anything", stored)


def test_session_token_carries_user_id():
    token = create_session_token(42)
    assert decode_session_token(token) == 42


def test_session_token_rejects_garbage():
    with pytest.raises(HTTPException) as excinfo:
        decode_session_token("garbage")
    assert excinfo.value.status_code == 400
    assert "invalid" in excinfo.value.detail


def test_generate_reset_token():
    token, token_hash, expires_at = generate_reset_token()
    assert len(token) == 40
    int(token, 16)
    assert token_hash == hash_reset_token(token)
    assert len(token_hash) == 64
    assert expires_at.tzinfo is not None


def test_reset_tokens_are_unique():
    assert generate_reset_token()[0] != generate_reset_token()[0]
