"""Password hashing and session tokens."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from bestelsysteem.exceptions import AuthenticationError

ROLE_ADMIN = "admin"
ROLE_USER = "user"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class AuthService:
    """Hashes system passwords and issues/validates JWT session tokens."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 480):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a plain text password."""
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash. A malformed hash never matches."""
        if not plain_password or not hashed_password:
            return False
        try:
            return pwd_context.verify(plain_password, hashed_password)
        except ValueError:
            return False

    def issue_token(self, system_id: int, role: str, expires_delta: Optional[timedelta] = None) -> str:
        """Create a JWT access token for a role on a system."""
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=self.expire_minutes))
        to_encode = {"sub": str(system_id), "role": role, "exp": expire}
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> Dict[str, Any]:
        """
        Decode and validate a token.

        Raises:
            AuthenticationError: bad signature, expired, or missing claims
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            raise AuthenticationError("Could not validate credentials")
        if payload.get("sub") is None or payload.get("role") not in (ROLE_ADMIN, ROLE_USER):
            raise AuthenticationError("Could not validate credentials")
        return payload
