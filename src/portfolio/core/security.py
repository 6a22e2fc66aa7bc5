import hashlib
import secrets
from datetime import datetime, timedelta, timezone

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from fastapi import HTTPException
from jose import ExpiredSignatureError, JWTError, jwt

from portfolio.shared import Logger, load_config

logger = Logger(__name__).get_logger()

config = load_config()
auth_config = config.auth

SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1
SCRYPT_LENGTH = 32
SALT_BYTES = 16
RESET_TOKEN_BYTES = 20


def _scrypt(salt: bytes) -> Scrypt:
    return Scrypt(salt=salt, length=SCRYPT_LENGTH, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)


def hash_password(password: str) -> str:
    """Derive an scrypt hash encoded as ``scrypt$<salt>$<digest>``."""
    salt = secrets.token_bytes(SALT_BYTES)
    digest = _scrypt(salt).derive(password.encode("utf-8"))
    return f"scrypt${salt.hex()}${digest.hex()}"


def verify_password(password: str, hashed: str) -> bool:
    try:
        scheme, salt_hex, digest_hex = hashed.split("$")
    except ValueError:
        logger.error("Stored password hash has an unknown format")
        return False
    if scheme != "scrypt":
        logger.error("Unsupported password hash scheme: %s", scheme)
        return False

    try:
        _scrypt(bytes.fromhex(salt_hex)).verify(
            password.encode("utf-8"), bytes.fromhex(digest_hex)
        )
    except (InvalidKey, ValueError):
        return False
    return True


def create_session_token(user_id: int) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(days=auth_config.jwt_expire_days)).timestamp()),
    }
    return jwt.encode(claims, auth_config.jwt_secret, algorithm=auth_config.jwt_algorithm)


def decode_session_token(token: str) -> int:
    """Return the user id carried by a session token.

    Raises HTTPException(400) when the token is expired, tampered with or
    otherwise unreadable.
    """
    try:
        claims = jwt.decode(
            token, auth_config.jwt_secret, algorithms=[auth_config.jwt_algorithm]
        )
        return int(claims["sub"])
    except ExpiredSignatureError as e:
        logger.info("Rejected expired session token")
        raise HTTPException(
            status_code=400, detail="Json Web Token is expired, Try again!"
        ) from e
    except (JWTError, KeyError, ValueError) as e:
        logger.warning("Rejected invalid session token: %s", e)
        raise HTTPException(
            status_code=400, detail="Json Web Token is invalid, Try again!"
        ) from e


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_reset_token() -> tuple[str, str, datetime]:
    """Return ``(token, token_hash, expires_at)`` for a password reset.

    Only the hash is meant to be persisted; the plain token goes to the user.
    """
    token = secrets.token_bytes(RESET_TOKEN_BYTES).hex()
    expires_at = datetime.now(timezone.utc) + timedelta(
        minutes=auth_config.reset_token_minutes
    )
    return token, hash_reset_token(token), expires_at

