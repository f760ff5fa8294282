"""
devnet/domains/users/schemas.py

Pydantic schemas for the user API: registration/login requests, profile
updates, and the public/summary DTOs returned to clients.

Notes:
 - `password` is plain text only at this boundary; it is hashed before UserModel is built.
 - `password_hash` never leaves the server: use UserPublic or UserSummary in responses.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import AnyHttpUrl, EmailStr, Field as PydField, TypeAdapter, ValidationError, field_validator, model_validator

from devnet.domains.users.models import EducationEntry, ExperienceEntry, UserModel
from devnet.helpers.serialize import APIModel, oid_to_str, oids_to_str

MIN_YEAR = 1900
MAX_YEAR = datetime.now().year + 10

_url_adapter = TypeAdapter(AnyHttpUrl)


def _validate_optional_url(value: Optional[str]) -> Optional[str]:
    if not value:
        return value
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        raise ValueError("Please provide a valid URL")
    return value


# ------------------------------
# Nested profile sections
# ------------------------------
class Education(APIModel):
    institution: str = ""
    degree: str = ""
    field_of_study: str = ""
    start_year: Optional[int] = PydField(default=None, ge=MIN_YEAR, le=MAX_YEAR)
    end_year: Optional[int] = PydField(default=None, ge=MIN_YEAR, le=MAX_YEAR)

    @model_validator(mode="after")
    def check_years(self):
        if self.start_year and self.end_year and self.end_year < self.start_year:
            raise ValueError("End year must be greater than or equal to start year")
        return self


class Experience(APIModel):
    company: str = ""
    position: str = ""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    description: str = ""

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("End date must be greater than or equal to start date")
        return self


class SocialLinksMixin(APIModel):
    github: Optional[str] = None
    linkedin: Optional[str] = None
    portfolio: Optional[str] = None

    @field_validator("github", "linkedin", "portfolio")
    @classmethod
    def check_url(cls, value: Optional[str]) -> Optional[str]:
        return _validate_optional_url(value)


# ------------------------------
# Requests
# ------------------------------
class UserRegister(SocialLinksMixin):
    username: str = PydField(..., min_length=1)
    full_name: str = ""
    email: EmailStr
    password: str = PydField(..., min_length=6)
    confirm_password: str
    bio: str = PydField(default="", max_length=500)
    profile_image: str = ""
    skills: List[str] = PydField(default_factory=list)
    area_of_expertise: str = ""
    education: List[Education] = PydField(default_factory=list)
    experience: List[Experience] = PydField(default_factory=list)
    favorite_languages: List[str] = PydField(default_factory=list)

    @field_validator("username")
    @classmethod
    def strip_username(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Username is required")
        return value

    @field_validator("skills", "favorite_languages")
    @classmethod
    def strip_items(cls, value: List[str]) -> List[str]:
        return [item.strip() for item in value if item.strip()]

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class UserLogin(APIModel):
    email: EmailStr
    password: str


class ProfileUpdate(SocialLinksMixin):
    """
    Fields a user may change on their own profile. Email and username are
    deliberately absent, so they are ignored if a client sends them.
    """
    full_name: Optional[str] = None
    bio: Optional[str] = PydField(default=None, max_length=500)
    profile_image: Optional[str] = None
    skills: Optional[List[str]] = None
    area_of_expertise: Optional[str] = None
    education: Optional[List[Education]] = None
    experience: Optional[List[Experience]] = None
    favorite_languages: Optional[List[str]] = None


# ------------------------------
# Responses
# ------------------------------
class UserSummary(APIModel):
    id: str = PydField(..., alias="_id")
    username: str
    full_name: Optional[str] = None
    profile_image: str = ""


class UserPublic(UserSummary):
    email: Optional[EmailStr] = None
    bio: str = ""
    skills: List[str] = PydField(default_factory=list)
    area_of_expertise: str = ""
    education: List[Education] = PydField(default_factory=list)
    experience: List[Experience] = PydField(default_factory=list)
    favorite_languages: List[str] = PydField(default_factory=list)
    github: str = ""
    linkedin: str = ""
    portfolio: str = ""
    connections: List[str] = PydField(default_factory=list)
    created_at: datetime
    updated_at: datetime


class RegisterResponse(APIModel):
    message: str
    user_id: str
    username: str


class TokenResponse(APIModel):
    token: str


class ProfileImageResponse(APIModel):
    message: str
    profile_image: str
    user: UserPublic


class UserSearchResponse(APIModel):
    users: List[UserPublic]


# ------------------------------
# Convenience converters
# ------------------------------
def education_to_entries(items: List[Education]) -> List[EducationEntry]:
    return [EducationEntry(**item.model_dump()) for item in items]


def experience_to_entries(items: List[Experience]) -> List[ExperienceEntry]:
    return [ExperienceEntry(**item.model_dump()) for item in items]


def usermodel_to_summary(user: UserModel) -> UserSummary:
    return UserSummary(
        **{
            "_id": oid_to_str(user.id),
            "username": user.username,
            "full_name": user.full_name,
            "profile_image": user.profile_image,
        }
    )


def usermodel_to_public(user: UserModel, include_email: bool = True) -> UserPublic:
    """
    Convert an Odmantic UserModel instance to a UserPublic DTO, hiding the password
    hash (and the email when `include_email` is False).
    """
    return UserPublic(
        **{
            "_id": oid_to_str(user.id),
            "username": user.username,
            "full_name": user.full_name,
            "profile_image": user.profile_image,
            "email": user.email if include_email else None,
            "bio": user.bio,
            "skills": user.skills,
            "area_of_expertise": user.area_of_expertise,
            "education": [Education.model_validate(e, from_attributes=True) for e in user.education],
            "experience": [Experience.model_validate(e, from_attributes=True) for e in user.experience],
            "favorite_languages": user.favorite_languages,
            "github": user.github,
            "linkedin": user.linkedin,
            "portfolio": user.portfolio,
            "connections": oids_to_str(user.connections),
            "created_at": user.created_at,
            "updated_at": user.updated_at,
        }
    )
