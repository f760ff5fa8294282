from datetime import datetime
from enum import Enum
from typing import List, Optional

from odmantic import EmbeddedModel, Field as OdmField, Model, ObjectId

from devnet.domains.users.models import utcnow


class SkillLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    EXPERT = "Expert"

    @property
    def fraction(self) -> float:
        return {"Beginner": 0.25, "Intermediate": 0.5, "Advanced": 0.75, "Expert": 1.0}[self.value]


class LanguageProficiency(str, Enum):
    ELEMENTARY = "Elementary"
    LIMITED_WORKING = "Limited Working"
    PROFESSIONAL_WORKING = "Professional Working"
    FULL_PROFESSIONAL = "Full Professional"
    NATIVE = "Native/Bilingual"


class CVLayout(str, Enum):
    STANDARD = "standard"
    MODERN = "modern"
    CREATIVE = "creative"
    MINIMAL = "minimal"


DEFAULT_CV_TITLE = "My CV"
DEFAULT_PRIMARY_COLOR = "#4e54c8"
DEFAULT_SECONDARY_COLOR = "#8f94fb"
DEFAULT_FONT_FAMILY = "Segoe UI, Tahoma, Geneva, Verdana, sans-serif"
DEFAULT_SECTIONS_ORDER = [
    "summary",
    "workExperience",
    "education",
    "skills",
    "projects",
    "certifications",
    "languages",
    "publications",
    "customSections",
]


# ------------------------------
# Embedded sections
# ------------------------------
class Contact(EmbeddedModel):
    email: str = ""
    phone: str = ""
    location: str = ""
    website: str = ""


class WorkExperience(EmbeddedModel):
    title: str
    company: str
    location: str = ""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    current: bool = False
    description: str = ""
    highlights: List[str] = OdmField(default_factory=list)
    technologies: List[str] = OdmField(default_factory=list)


class CVEducation(EmbeddedModel):
    institution: str
    degree: str = ""
    field_of_study: str = ""
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    current: bool = False
    description: str = ""
    achievements: List[str] = OdmField(default_factory=list)


class Skill(EmbeddedModel):
    name: str
    level: SkillLevel = SkillLevel.INTERMEDIATE
    years_of_experience: Optional[int] = None


class Language(EmbeddedModel):
    name: str
    proficiency: LanguageProficiency = LanguageProficiency.PROFESSIONAL_WORKING


class Certification(EmbeddedModel):
    name: str
    issuer: str = ""
    date: Optional[datetime] = None
    expires: Optional[datetime] = None
    has_expiry: bool = False
    credential_id: str = ""
    credential_url: str = ""


class CVProject(EmbeddedModel):
    title: str
    description: str = ""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    current: bool = False
    url: str = ""
    repository_url: str = ""
    technologies: List[str] = OdmField(default_factory=list)
    highlights: List[str] = OdmField(default_factory=list)


class Publication(EmbeddedModel):
    title: str
    publisher: str = ""
    date: Optional[datetime] = None
    url: str = ""
    description: str = ""


class CustomItem(EmbeddedModel):
    title: str = ""
    subtitle: str = ""
    date: Optional[datetime] = None
    description: str = ""
    url: str = ""


class CustomSection(EmbeddedModel):
    title: str
    items: List[CustomItem] = OdmField(default_factory=list)


class Theme(EmbeddedModel):
    primary_color: str = DEFAULT_PRIMARY_COLOR
    secondary_color: str = DEFAULT_SECONDARY_COLOR
    font_family: str = DEFAULT_FONT_FAMILY
    layout: CVLayout = CVLayout.STANDARD


class DisplayOptions(EmbeddedModel):
    show_profile_image: bool = True
    show_contact: bool = True
    sections_order: List[str] = OdmField(default_factory=lambda: list(DEFAULT_SECTIONS_ORDER))
    hidden_sections: List[str] = OdmField(default_factory=list)


# ------------------------------
# CV profile document
# ------------------------------
class CVProfileModel(Model):
    """
    Odmantic model for the 'cv_profiles' collection.
    A user owns up to MAX_CV_PROFILES of these; at most one has `is_default` set,
    which the service layer maintains whenever a default profile is saved.
    """
    user_id: ObjectId
    title: str = DEFAULT_CV_TITLE
    full_name: Optional[str] = None
    profile_image: str = ""  # data URL or /uploads path
    is_public: bool = False
    is_default: bool = False

    headline: Optional[str] = OdmField(default=None, max_length=150)
    summary: Optional[str] = OdmField(default=None, max_length=1000)
    contact: Contact = OdmField(default_factory=Contact)

    work_experience: List[WorkExperience] = OdmField(default_factory=list)
    education: List[CVEducation] = OdmField(default_factory=list)
    skills: List[Skill] = OdmField(default_factory=list)
    languages: List[Language] = OdmField(default_factory=list)
    certifications: List[Certification] = OdmField(default_factory=list)
    projects: List[CVProject] = OdmField(default_factory=list)
    publications: List[Publication] = OdmField(default_factory=list)
    custom_sections: List[CustomSection] = OdmField(default_factory=list)

    theme: Theme = OdmField(default_factory=Theme)
    display_options: DisplayOptions = OdmField(default_factory=DisplayOptions)

    last_updated: datetime = OdmField(default_factory=utcnow)
    created_at: datetime = OdmField(default_factory=utcnow)
    updated_at: datetime = OdmField(default_factory=utcnow)

    model_config = {"collection": "cv_profiles"}
