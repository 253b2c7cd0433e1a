from pydantic import model_validator
from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL
from typing import Optional, Union

# Development-only signing key. Production startup refuses to run with it.
DEV_SECRET_KEY = "dev-secret-key-change-in-production"


class Settings(BaseSettings):
    # Runtime environment - controls error detail leakage and secret checks
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    PORT: int = 3000

    # Database connection - DATABASE_URL wins when set, otherwise the URL
    # is assembled from the individual DB_* parts
    DATABASE_URL: Optional[str] = None
    DB_HOST: str = "localhost"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_NAME: str = "student_freelancer_db"
    DB_PORT: int = 5432
    # Pool ceiling - excess requests queue for up to DB_POOL_TIMEOUT seconds
    DB_POOL_SIZE: int = 10
    DB_POOL_TIMEOUT: int = 60

    # Security settings
    # SECRET_KEY signs every JWT; anyone holding it can mint tokens
    SECRET_KEY: str = DEV_SECRET_KEY
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60

    # Outbound mail
    EMAIL_ENABLED: bool = True
    EMAIL_HOST: str = "smtp.gmail.com"
    EMAIL_PORT: int = 587
    EMAIL_USER: Optional[str] = None
    EMAIL_PASS: Optional[str] = None
    EMAIL_FROM: str = "Student Freelancer Workplace <no-reply@studentfreelancer.dev>"

    # Profile picture storage
    UPLOAD_DIR: str = "./uploads/profile-pictures"
    UPLOAD_URL_PREFIX: str = "/uploads/profile-pictures"
    MAX_FILE_SIZE: int = 5 * 1024 * 1024  # 5MB
    DEFAULT_PROFILE_PICTURE: str = "default-profile.jpg"

    # Orphaned picture sweep
    ORPHAN_CLEANUP_ENABLED: bool = True
    ORPHAN_CLEANUP_INTERVAL_HOURS: int = 6
    ORPHAN_GRACE_PERIOD_MINUTES: int = 60

    # Frontend - used for links in emails and as a default CORS origin
    FRONTEND_URL: str = "http://localhost:3000"
    CORS_ORIGINS: Union[str, list[str]] = "http://localhost:3000,http://localhost:5173"

    @model_validator(mode="after")
    def check_production_secret(self):
        if self.is_production and self.SECRET_KEY == DEV_SECRET_KEY:
            raise ValueError("SECRET_KEY must be set when ENVIRONMENT=production")
        return self

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def database_url(self) -> Union[str, URL]:
        """Resolve the SQLAlchemy URL from DATABASE_URL or the DB_* parts"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        # URL.create escapes special characters in the password
        return URL.create(
            "postgresql+psycopg2",
            username=self.DB_USER,
            password=self.DB_PASSWORD or None,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
        )

    def get_cors_origins(self) -> list[str]:
        """Parse CORS_ORIGINS string into list"""
        if isinstance(self.CORS_ORIGINS, str):
            return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]
        return self.CORS_ORIGINS if isinstance(self.CORS_ORIGINS, list) else []

    class Config:
        # Load settings from .env file if it exists
        # Environment variables override defaults
        env_file = ".env"
        case_sensitive = True


settings = Settings()
