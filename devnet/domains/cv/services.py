"""
CV profile business logic: ownership-scoped CRUD, the single-default rule,
the per-user profile cap, syncing sections from the user profile, and loading
the pieces the PDF renderer needs.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from odmantic import AIOEngine

from devnet.core.config import settings
from devnet.core.errors import BadRequestError, NotFoundError
from devnet.domains.cv.models import (
    Contact,
    CVEducation,
    CVProfileModel,
    Language,
    LanguageProficiency,
    Skill,
    SkillLevel,
    WorkExperience,
)
from devnet.domains.cv.schemas import CVProfileWrite, SyncSection
from devnet.domains.uploads.storage import UploadStorage
from devnet.domains.users.models import UserModel, utcnow
from devnet.domains.users.schemas import UserSummary, usermodel_to_summary
from devnet.domains.users.services import check_data_url_size, decode_data_url, find_user, get_user

logger = logging.getLogger(__name__)

NOT_FOUND = "CV profile not found"
COPY_SUFFIX = " (Copy)"


# ------------------------------
# Loading
# ------------------------------
async def get_owned(engine: AIOEngine, cv_id: ObjectId, user_id: ObjectId) -> CVProfileModel:
    profile = await engine.find_one(
        CVProfileModel, CVProfileModel.id == cv_id, CVProfileModel.user_id == user_id
    )
    if profile is None:
        logger.warning(f"CV profile {cv_id} not found for user {user_id}")
        raise NotFoundError(NOT_FOUND)
    return profile


async def list_profiles(engine: AIOEngine, user_id: ObjectId) -> List[CVProfileModel]:
    return await engine.find(CVProfileModel, CVProfileModel.user_id == user_id)


async def get_default(engine: AIOEngine, user_id: ObjectId) -> CVProfileModel:
    """The user's default profile, else their first one."""
    profile = await engine.find_one(
        CVProfileModel, CVProfileModel.user_id == user_id, CVProfileModel.is_default == True  # noqa: E712
    )
    if profile is None:
        profile = await engine.find_one(CVProfileModel, CVProfileModel.user_id == user_id)
    if profile is None:
        raise NotFoundError(NOT_FOUND)
    return profile


async def _owner_summary(engine: AIOEngine, user_id: ObjectId) -> Optional[UserSummary]:
    owner = await find_user(engine, user_id)
    return usermodel_to_summary(owner) if owner else None


async def get_public(engine: AIOEngine, cv_id: ObjectId) -> Tuple[CVProfileModel, Optional[UserSummary]]:
    profile = await engine.find_one(CVProfileModel, CVProfileModel.id == cv_id)
    if profile is None or not profile.is_public:
        raise NotFoundError("Public CV not found")
    return profile, await _owner_summary(engine, profile.user_id)


async def get_public_for_user(
    engine: AIOEngine, user_id: ObjectId
) -> Tuple[CVProfileModel, Optional[UserSummary]]:
    profile = await engine.find_one(
        CVProfileModel, CVProfileModel.user_id == user_id, CVProfileModel.is_public == True  # noqa: E712
    )
    if profile is None:
        raise NotFoundError(NOT_FOUND)
    return profile, await _owner_summary(engine, user_id)


# ------------------------------
# Writes
# ------------------------------
async def save_profile(engine: AIOEngine, profile: CVProfileModel) -> CVProfileModel:
    """
    Persists the profile. Saving a default profile clears the flag on every
    other profile of the same owner first.
    """
    if profile.is_default:
        collection = engine.get_collection(CVProfileModel)
        await collection.update_many(
            {"user_id": profile.user_id, "_id": {"$ne": profile.id}},
            {"$set": {"is_default": False}},
        )
    profile.updated_at = utcnow()
    await engine.save(profile)
    return profile


async def _check_limit(engine: AIOEngine, user_id: ObjectId) -> int:
    count = await engine.count(CVProfileModel, CVProfileModel.user_id == user_id)
    if count >= settings.MAX_CV_PROFILES:
        raise BadRequestError(
            f"Maximum number of CV profiles reached ({settings.MAX_CV_PROFILES}). "
            "Please delete an existing CV to create a new one."
        )
    return count


def apply_changes(profile: CVProfileModel, changes: Dict[str, Any]) -> CVProfileModel:
    """Returns a revalidated copy of `profile` with `changes` (snake_case keys) applied."""
    data = profile.model_dump()
    data.update(changes)
    data["last_updated"] = utcnow()
    return CVProfileModel(**data)


async def create_profile(engine: AIOEngine, user_id: ObjectId, payload: CVProfileWrite) -> CVProfileModel:
    count = await _check_limit(engine, user_id)
    user = await get_user(engine, user_id)
    check_data_url_size(payload.profile_image)

    changes = payload.changes()
    changes.setdefault("title", f"CV {count + 1}")
    if not changes.get("full_name"):
        changes["full_name"] = user.display_name

    profile = apply_changes(CVProfileModel(user_id=user_id, is_default=count == 0), changes)
    await save_profile(engine, profile)
    logger.info(f"CV profile created: id={profile.id}, user_id={user_id}, default={profile.is_default}")
    return profile


async def update_profile(
    engine: AIOEngine, cv_id: ObjectId, user_id: ObjectId, payload: CVProfileWrite
) -> CVProfileModel:
    profile = await get_owned(engine, cv_id, user_id)
    check_data_url_size(payload.profile_image)
    updated = apply_changes(profile, payload.changes())
    await save_profile(engine, updated)
    logger.info(f"CV profile updated: id={cv_id}")
    return updated


async def delete_profile(engine: AIOEngine, cv_id: ObjectId, user_id: ObjectId) -> None:
    profile = await get_owned(engine, cv_id, user_id)
    await engine.delete(profile)
    logger.info(f"CV profile deleted: id={cv_id}")


async def set_public(engine: AIOEngine, cv_id: ObjectId, user_id: ObjectId, public: bool) -> CVProfileModel:
    profile = await get_owned(engine, cv_id, user_id)
    profile.is_public = public
    return await save_profile(engine, profile)


async def set_default(engine: AIOEngine, cv_id: ObjectId, user_id: ObjectId) -> CVProfileModel:
    profile = await get_owned(engine, cv_id, user_id)
    profile.is_default = True
    return await save_profile(engine, profile)


async def set_image(engine: AIOEngine, cv_id: ObjectId, user_id: ObjectId, image_data: Optional[str]) -> CVProfileModel:
    if not image_data:
        raise BadRequestError("No image data provided")
    check_data_url_size(image_data)
    profile = await get_owned(engine, cv_id, user_id)
    profile.profile_image = image_data
    profile.last_updated = utcnow()
    return await save_profile(engine, profile)


def duplicate_of(original: CVProfileModel) -> CVProfileModel:
    """A fresh, non-default copy of `original` titled "<title> (Copy)"."""
    data = original.model_dump(exclude={"id", "is_default", "created_at", "updated_at", "last_updated"})
    data["title"] = f"{original.title}{COPY_SUFFIX}"
    return CVProfileModel(**data)


async def duplicate_profile(engine: AIOEngine, cv_id: ObjectId, user_id: ObjectId) -> CVProfileModel:
    await _check_limit(engine, user_id)
    original = await get_owned(engine, cv_id, user_id)
    copy = duplicate_of(original)
    await save_profile(engine, copy)
    logger.info(f"CV profile {cv_id} duplicated as {copy.id}")
    return copy


# ------------------------------
# Sync from the user profile
# ------------------------------
def apply_sync(profile: CVProfileModel, user: UserModel, sections: Iterable[SyncSection]) -> CVProfileModel:
    """
    Copies the requested sections of the user profile onto `profile`.
    List sections are only replaced when the user profile has entries for them.
    """
    sections = {SyncSection(section) for section in sections}

    if SyncSection.BASIC_INFO in sections:
        profile.full_name = user.display_name
        profile.headline = user.area_of_expertise or ""
        profile.summary = user.bio or ""
        profile.contact = Contact(email=user.email or "", website=user.portfolio or "")

    if SyncSection.EDUCATION in sections and user.education:
        profile.education = [
            CVEducation(
                institution=edu.institution or "",
                degree=edu.degree or "",
                field_of_study=edu.field_of_study or "",
                start_year=edu.start_year,
                end_year=edu.end_year,
                current=not edu.end_year,
            )
            for edu in user.education
        ]

    if SyncSection.EXPERIENCE in sections and user.experience:
        profile.work_experience = [
            WorkExperience(
                title=exp.position or "",
                company=exp.company or "",
                start_date=exp.start_date,
                end_date=exp.end_date,
                current=not exp.end_date,
                description=exp.description or "",
            )
            for exp in user.experience
        ]

    if SyncSection.SKILLS in sections and user.skills:
        profile.skills = [
            Skill(name=skill, level=SkillLevel.INTERMEDIATE, years_of_experience=1) for skill in user.skills
        ]

    if SyncSection.LANGUAGES in sections and user.favorite_languages:
        profile.languages = [
            Language(name=lang, proficiency=LanguageProficiency.PROFESSIONAL_WORKING)
            for lang in user.favorite_languages
        ]

    profile.last_updated = utcnow()
    return profile


async def sync_profile(engine: AIOEngine, user_id: ObjectId, sections: List[SyncSection]) -> CVProfileModel:
    user = await get_user(engine, user_id)
    try:
        profile = await get_default(engine, user_id)
    except NotFoundError:
        await _check_limit(engine, user_id)
        profile = CVProfileModel(user_id=user_id, is_default=True)

    apply_sync(profile, user, sections)
    await save_profile(engine, profile)
    logger.info(f"CV profile {profile.id} synced from user profile: {[s.value for s in sections]}")
    return profile


# ------------------------------
# PDF inputs
# ------------------------------
def load_profile_image(profile: CVProfileModel, storage: UploadStorage) -> Optional[bytes]:
    """
    Raw bytes of the profile image, from a data URL or an uploaded file.
    A missing or unreadable image is logged and skipped.
    """
    source = profile.profile_image
    if not source or not profile.display_options.show_profile_image:
        return None
    image = decode_data_url(source)
    if image is not None:
        return image
    path = storage.resolve_url(source)
    if path is None:
        logger.warning(f"Profile image {source!r} of CV {profile.id} not found, rendering without it")
        return None
    try:
        return path.read_bytes()
    except OSError as exc:
        logger.warning(f"Could not read profile image {path}: {exc}")
        return None


async def pdf_inputs(
    engine: AIOEngine, cv_id: ObjectId, user_id: ObjectId, storage: UploadStorage
) -> Tuple[CVProfileModel, str, Optional[bytes]]:
    profile = await get_owned(engine, cv_id, user_id)
    user = await find_user(engine, user_id)
    display_name = profile.full_name or (user.display_name if user else "") or "CV"
    return profile, display_name, load_profile_image(profile, storage)
