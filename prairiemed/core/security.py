"""Password hashing and the legacy plaintext migration path."""
from dataclasses import dataclass
from typing import Optional
import hmac
import logging
from passlib.context import CryptContext

logger = logging.getLogger(__name__)

ARGON2_PREFIX = "$argon2"

pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
    argon2__memory_cost=65536,  # 64MB
    argon2__time_cost=3,
    argon2__parallelism=1,
)


@dataclass(frozen=True)
class PasswordCheck:
    ok: bool
    # Set only when a legacy plaintext seed matched; the caller may persist it
    migrated_hash: Optional[str] = None


def hash_password(password: str) -> str:
    if not password or not isinstance(password, str):
        raise ValueError("Password must be a non-empty string")
    return pwd_context.hash(password)


def is_strong_hash(stored_hash: Optional[str]) -> bool:
    return bool(stored_hash) and stored_hash.startswith(ARGON2_PREFIX)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not plain_password or not hashed_password:
        return False
    if not isinstance(plain_password, str):
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as exc:
        # Corrupt or unrecognised hash
        logger.warning("Password hash could not be verified: %s", exc.__class__.__name__)
        return False


def verify_or_migrate(stored_hash: Optional[str], supplied: str) -> PasswordCheck:
    """Check ``supplied`` against ``stored_hash``.

    Argon2 hashes are verified cryptographically. Anything else is treated as a
    plaintext seed from the legacy import; on a match the result carries a
    fresh argon2 hash so the caller can upgrade the stored record.
    """
    if not stored_hash or not supplied:
        return PasswordCheck(ok=False)

    if is_strong_hash(stored_hash):
        return PasswordCheck(ok=verify_password(supplied, stored_hash))

    if not hmac.compare_digest(stored_hash.encode("utf-8"), supplied.encode("utf-8")):
        return PasswordCheck(ok=False)
    return PasswordCheck(ok=True, migrated_hash=hash_password(supplied))
