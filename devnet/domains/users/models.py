from datetime import datetime, timezone
from typing import List, Optional

from odmantic import EmbeddedModel, Field as OdmField, Model, ObjectId
from pydantic import EmailStr


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EducationEntry(EmbeddedModel):
    institution: str = ""
    degree: str = ""
    field_of_study: str = ""
    start_year: Optional[int] = None
    end_year: Optional[int] = None


class ExperienceEntry(EmbeddedModel):
    company: str = ""
    position: str = ""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    description: str = ""


class UserModel(Model):
    """
    Odmantic model for the 'users' collection.
    Unique indexes on `email` and `username` are created at application startup.
    `connections` is an asymmetric follow list: the users this user follows.
    """
    username: str
    full_name: Optional[str] = OdmField(default=None)
    email: EmailStr
    password_hash: str

    bio: str = OdmField(default="", max_length=500)
    profile_image: str = OdmField(default="")
    skills: List[str] = OdmField(default_factory=list)
    area_of_expertise: str = OdmField(default="")
    education: List[EducationEntry] = OdmField(default_factory=list)
    experience: List[ExperienceEntry] = OdmField(default_factory=list)
    favorite_languages: List[str] = OdmField(default_factory=list)

    github: str = OdmField(default="")
    linkedin: str = OdmField(default="")
    portfolio: str = OdmField(default="")

    connections: List[ObjectId] = OdmField(default_factory=list)

    created_at: datetime = OdmField(default_factory=utcnow)
    updated_at: datetime = OdmField(default_factory=utcnow)

    model_config = {"collection": "users"}

    @property
    def display_name(self) -> str:
        return self.full_name or self.username
