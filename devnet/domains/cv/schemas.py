"""
devnet/domains/cv/schemas.py

Pydantic schemas for the CV profile API. The section classes mirror the
embedded models in cv/models.py field for field, so a section can move between
the two with a plain model_dump().
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field as PydField, model_validator

from devnet.domains.cv.models import (
    DEFAULT_FONT_FAMILY,
    DEFAULT_PRIMARY_COLOR,
    DEFAULT_SECONDARY_COLOR,
    DEFAULT_SECTIONS_ORDER,
    CVLayout,
    CVProfileModel,
    LanguageProficiency,
    SkillLevel,
)
from devnet.domains.users.schemas import UserSummary
from devnet.helpers.serialize import APIModel, oid_to_str


class _DateRange(APIModel):
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    current: bool = False

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("End date must be greater than or equal to start date")
        return self


# ------------------------------
# Sections
# ------------------------------
class ContactSchema(APIModel):
    email: str = ""
    phone: str = ""
    location: str = ""
    website: str = ""


class WorkExperienceSchema(_DateRange):
    title: str
    company: str
    location: str = ""
    description: str = ""
    highlights: List[str] = PydField(default_factory=list)
    technologies: List[str] = PydField(default_factory=list)


class EducationSchema(APIModel):
    institution: str
    degree: str = ""
    field_of_study: str = ""
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    current: bool = False
    description: str = ""
    achievements: List[str] = PydField(default_factory=list)


class SkillSchema(APIModel):
    name: str
    level: SkillLevel = SkillLevel.INTERMEDIATE
    years_of_experience: Optional[int] = PydField(default=None, ge=0)


class LanguageSchema(APIModel):
    name: str
    proficiency: LanguageProficiency = LanguageProficiency.PROFESSIONAL_WORKING


class CertificationSchema(APIModel):
    name: str
    issuer: str = ""
    date: Optional[datetime] = None
    expires: Optional[datetime] = None
    has_expiry: bool = False
    credential_id: str = ""
    credential_url: str = PydField(default="", alias="credentialURL")


class ProjectSchema(_DateRange):
    title: str
    description: str = ""
    url: str = ""
    repository_url: str = ""
    technologies: List[str] = PydField(default_factory=list)
    highlights: List[str] = PydField(default_factory=list)


class PublicationSchema(APIModel):
    title: str
    publisher: str = ""
    date: Optional[datetime] = None
    url: str = ""
    description: str = ""


class CustomItemSchema(APIModel):
    title: str = ""
    subtitle: str = ""
    date: Optional[datetime] = None
    description: str = ""
    url: str = ""


class CustomSectionSchema(APIModel):
    title: str
    items: List[CustomItemSchema] = PydField(default_factory=list)


class ThemeSchema(APIModel):
    primary_color: str = DEFAULT_PRIMARY_COLOR
    secondary_color: str = DEFAULT_SECONDARY_COLOR
    font_family: str = DEFAULT_FONT_FAMILY
    layout: CVLayout = CVLayout.STANDARD


class DisplayOptionsSchema(APIModel):
    show_profile_image: bool = True
    show_contact: bool = True
    sections_order: List[str] = PydField(default_factory=lambda: list(DEFAULT_SECTIONS_ORDER))
    hidden_sections: List[str] = PydField(default_factory=list)


# ------------------------------
# Requests
# ------------------------------
class CVProfileWrite(APIModel):
    """
    Body for create and update. Only the keys the client sends are applied;
    ownership and the default flag are managed by dedicated routes.
    """
    title: Optional[str] = None
    full_name: Optional[str] = None
    profile_image: Optional[str] = None
    is_public: Optional[bool] = None
    headline: Optional[str] = PydField(default=None, max_length=150)
    summary: Optional[str] = PydField(default=None, max_length=1000)
    contact: Optional[ContactSchema] = None
    work_experience: Optional[List[WorkExperienceSchema]] = None
    education: Optional[List[EducationSchema]] = None
    skills: Optional[List[SkillSchema]] = None
    languages: Optional[List[LanguageSchema]] = None
    certifications: Optional[List[CertificationSchema]] = None
    projects: Optional[List[ProjectSchema]] = None
    publications: Optional[List[PublicationSchema]] = None
    custom_sections: Optional[List[CustomSectionSchema]] = None
    theme: Optional[ThemeSchema] = None
    display_options: Optional[DisplayOptionsSchema] = None

    def changes(self) -> Dict[str, Any]:
        """Fields the client actually set, dropping nulls on fields that cannot be null."""
        nullable = {"full_name", "headline", "summary"}
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None or key in nullable
        }


class CVImageBody(APIModel):
    image_data: Optional[str] = None


class SyncSection(str, Enum):
    BASIC_INFO = "basicInfo"
    EDUCATION = "education"
    EXPERIENCE = "experience"
    SKILLS = "skills"
    LANGUAGES = "languages"


class CVSyncBody(APIModel):
    sections: List[SyncSection] = PydField(default_factory=list)


# ------------------------------
# Responses
# ------------------------------
class CVProfileOut(APIModel):
    id: str = PydField(..., alias="_id")
    user_id: str
    title: str
    full_name: Optional[str] = None
    profile_image: str = ""
    is_public: bool = False
    is_default: bool = False
    headline: Optional[str] = None
    summary: Optional[str] = None
    contact: ContactSchema
    work_experience: List[WorkExperienceSchema] = PydField(default_factory=list)
    education: List[EducationSchema] = PydField(default_factory=list)
    skills: List[SkillSchema] = PydField(default_factory=list)
    languages: List[LanguageSchema] = PydField(default_factory=list)
    certifications: List[CertificationSchema] = PydField(default_factory=list)
    projects: List[ProjectSchema] = PydField(default_factory=list)
    publications: List[PublicationSchema] = PydField(default_factory=list)
    custom_sections: List[CustomSectionSchema] = PydField(default_factory=list)
    theme: ThemeSchema
    display_options: DisplayOptionsSchema
    last_updated: datetime
    created_at: datetime
    updated_at: datetime
    user: Optional[UserSummary] = None


class CVImageResponse(APIModel):
    success: bool = True
    message: str
    profile_image: str


class CVMessage(APIModel):
    message: str


# ------------------------------
# Convenience converters
# ------------------------------
def cvprofile_to_dto(profile: CVProfileModel, owner: Optional[UserSummary] = None) -> CVProfileOut:
    data = profile.model_dump()
    data["_id"] = oid_to_str(data.pop("id"))
    data["user_id"] = oid_to_str(profile.user_id)
    data["user"] = owner
    return CVProfileOut(**data)
