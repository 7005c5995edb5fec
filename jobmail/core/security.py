import logging
import bcrypt
from passlib.context import CryptContext
from datetime import datetime, timedelta
from jose import jwt
from jobmail.core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES

logger = logging.getLogger(__name__)

# passlib only verifies hashes that bcrypt itself rejects (legacy formats)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

BCRYPT_MAX_BYTES = 72


def _truncate_password(password: str) -> bytes:
    """Encode a password and cut it to bcrypt's 72-byte limit."""
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > BCRYPT_MAX_BYTES:
        logger.warning("Password exceeds 72 bytes, truncating before hashing")
        password_bytes = password_bytes[:BCRYPT_MAX_BYTES]
    return password_bytes


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt directly.

    Args:
        password: Plain text password

    Returns:
        Hashed password string (bcrypt format compatible with passlib)

    Raises:
        ValueError: If password cannot be hashed
    """
    try:
        return bcrypt.hashpw(_truncate_password(password), bcrypt.gensalt()).decode("utf-8")
    except (ValueError, TypeError) as e:
        logger.error(f"Password hashing failed: {e}")
        raise ValueError("Invalid password") from e


def verify_password(password: str, hashed: str) -> bool:
    """
    Verify a password against its hash.

    Supports both bcrypt-native hashes and passlib-wrapped hashes.
    """
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_truncate_password(password), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        try:
            return pwd_context.verify(password, hashed)
        except (ValueError, TypeError):
            return False


def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
