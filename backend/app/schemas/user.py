from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, List, Optional
from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
)

PHONE_PATTERN = r"^\+?[1-9]\d{0,15}$"


class ProfileFields(BaseModel):
    """Profile fields a user may edit about themselves"""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=2, max_length=100)
    phone: str = Field(pattern=PHONE_PATTERN)
    skills: Optional[str] = Field(None, max_length=500)
    bio: Optional[str] = Field(None, max_length=1000)
    hourly_rate: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)

    @field_validator("skills", "bio", "hourly_rate", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        # Empty form fields mean "not provided"
        if isinstance(value, str) and not value.strip():
            return None
        return value


class UserForm(ProfileFields):
    """Fields accepted by update-by-id; unknown fields are ignored"""
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        if len(value) > 100:
            raise ValueError("Email must be at most 100 characters")
        return value.lower()


class RegistrationForm(UserForm):
    """Registration is the only place a password is set"""
    password: Optional[str] = Field(None, min_length=6, max_length=72)

    @field_validator("password", mode="before")
    @classmethod
    def blank_password(cls, value: Any) -> Any:
        if isinstance(value, str) and value == "":
            return None
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    # Length rules apply at registration only
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: str
    profile_picture: Optional[str]
    skills: Optional[str]
    bio: Optional[str]
    hourly_rate: Optional[Decimal]
    is_verified: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("hourly_rate")
    def serialize_hourly_rate(self, value: Optional[Decimal], _info):
        return float(value) if value is not None else None

    @field_serializer("created_at", "updated_at")
    def serialize_timestamps(self, value: Optional[datetime], _info):
        return value.isoformat() if value else None

    @classmethod
    def from_user(cls, user, url_for: Callable[[Optional[str]], Optional[str]]) -> "UserResponse":
        """Build the public view of a user; the picture becomes a URL"""
        response = cls.model_validate(user)
        response.profile_picture = url_for(user.profile_picture)
        return response


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_users: int
    limit: int


class UserListResponse(BaseModel):
    users: List[UserResponse]
    pagination: Pagination


def validation_errors(exc: ValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors into {field, message} pairs"""
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "body"
        errors.append({"field": field, "message": error.get("msg", "Invalid value")})
    return errors
