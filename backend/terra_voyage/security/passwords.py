"""Password hashing and verification using Argon2id."""

from argon2 import PasswordHasher
from argon2.exceptions import HashingError, VerifyMismatchError

from backend.terra_voyage.config import get_settings

MAX_PASSWORD_LENGTH = 128


def get_password_hasher() -> PasswordHasher:
    """Get configured Argon2id password hasher."""
    return PasswordHasher(
        time_cost=3,
        memory_cost=65536,  # 64 MB
        parallelism=1,
        hash_len=32,
        salt_len=16,
        encoding="utf-8",
    )


def validate_password(password: str) -> None:
    """Raise ValueError if the password violates length rules."""
    settings = get_settings()
    if len(password) < settings.password_min_length:
        raise ValueError(
            f"Password must be at least {settings.password_min_length} characters"
        )
    if len(password) > MAX_PASSWORD_LENGTH:
        raise ValueError(f"Password must be {MAX_PASSWORD_LENGTH} characters or less")


def hash_password(password: str) -> str:
    """Hash password using Argon2id.

    Raises:
        ValueError: If password is invalid
        HashingError: If hashing fails
    """
    validate_password(password)
    try:
        return get_password_hasher().hash(password)
    except Exception as e:
        raise HashingError(f"Password hashing failed: {e}")


def hash_secret(secret: str) -> str:
    """Hash a short secret (share-link password) without length rules."""
    return get_password_hasher().hash(secret)


def verify_password(password: str, hash_string: str) -> bool:
    """Verify password against Argon2id hash.

    Returns:
        True if password matches hash, False otherwise
    """
    try:
        get_password_hasher().verify(hash_string, password)
        return True
    except VerifyMismatchError:
        return False
    except Exception:
        # Malformed hash
        return False
