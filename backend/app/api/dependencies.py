from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.core.errors import Unauthorized
from app.core.security import TokenClaims, verify_token
from app.services.email_service import EmailService, email_service
from app.services.user_directory import UserDirectory
from app.services.user_service import UserService
from app.storage.local_storage import LocalStorage, storage

# Extracts the bearer token from the Authorization header
# tokenUrl tells Swagger UI where the login endpoint lives
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login", auto_error=False)


def get_storage() -> LocalStorage:
    return storage


def get_notifier() -> EmailService:
    return email_service


def get_user_service(
    db: Session = Depends(get_db),
    media: LocalStorage = Depends(get_storage),
    notifier: EmailService = Depends(get_notifier),
) -> UserService:
    return UserService(UserDirectory(db), media, notifier)


async def get_token_claims(token: str | None = Depends(oauth2_scheme)) -> TokenClaims:
    """
    Identity of the caller from the bearer token.

    No token raises Unauthorized; a bad, tampered or expired token raises
    InvalidToken. Both render as 401. Whether the user still exists is up
    to the route.
    """
    if token is None:
        raise Unauthorized()
    return verify_token(token)
