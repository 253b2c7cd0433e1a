from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from app.core.config import settings
from app.core.errors import InvalidToken

# CryptContext handles password hashing using bcrypt
# bcrypt salts every hash, so equal passwords produce different hashes
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class TokenClaims:
    """Identity asserted by a verified access token"""
    user_id: int
    email: str


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a password against a hash using constant-time comparison"""
    # Accounts created without a password have no hash and can never log in
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt"""
    return pwd_context.hash(password)


def issue_token(user_id: int, email: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed access token for the given user"""
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        # 'sub' is the JWT standard subject claim and must be a string
        "sub": str(user_id),
        "userId": user_id,
        "email": email,
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str) -> TokenClaims:
    """Decode and verify an access token.

    Raises InvalidToken when the signature is wrong, the token has expired
    or the payload does not carry a usable identity.
    """
    try:
        # Verifies signature and the 'exp' claim
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise InvalidToken()

    user_id = payload.get("userId")
    email = payload.get("email")
    if isinstance(user_id, bool) or not isinstance(user_id, int) or not isinstance(email, str):
        raise InvalidToken()
    return TokenClaims(user_id=user_id, email=email)
