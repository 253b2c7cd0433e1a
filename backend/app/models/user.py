from sqlalchemy import Column, Integer, String, DateTime, Boolean, Numeric, Text
from sqlalchemy.sql import func
from app.core.database import Base


class User(Base):
    """
    A student freelancer listed in the directory.

    profile_picture holds the stored file name in the media store, never a
    URL; the public URL is derived when the user is serialized.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    # Email is the login identity - uniqueness is enforced by the database
    email = Column(String(100), unique=True, index=True, nullable=False)
    phone = Column(String(20), nullable=False)
    profile_picture = Column(String(255), nullable=True)
    skills = Column(Text, nullable=True)
    bio = Column(Text, nullable=True)
    hourly_rate = Column(Numeric(10, 2), nullable=True)
    # Null for accounts registered without a password; those cannot log in
    hashed_password = Column(String(255), nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    verification_token = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
