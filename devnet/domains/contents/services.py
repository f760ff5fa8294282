"""
Content store operations.

Writes to an existing content document go through `mutate_content`: load the
document, apply a pure transition from `interactions`, and replace it only if
its `revision` is unchanged. A lost race reloads and reapplies the transition,
so concurrent toggles and votes never overwrite each other.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from bson import ObjectId
from odmantic import AIOEngine
from pymongo.errors import PyMongoError

from devnet.core.config import settings
from devnet.core.errors import ConflictError, DomainError, NotFoundError, PermissionDeniedError
from devnet.domains.contents import interactions
from devnet.domains.contents.interactions import Reaction
from devnet.domains.contents.models import (
    DEFAULT_IMAGE,
    DEFAULT_TITLE,
    ContentModel,
    ContentType,
    Visibility,
    utcnow,
)
from devnet.domains.contents.payloads import dump_payload, merge_payload, parse_payload
from devnet.domains.contents.schemas import ContentCreate, ContentUpdate
from devnet.domains.users.models import UserModel
from devnet.domains.users.services import ids_connected_to

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_AVATAR = "/default-avatar.png"
TRENDING_LIMIT = 20


# ------------------------------
# Loading and guarded writes
# ------------------------------
async def find_content(engine: AIOEngine, content_id: ObjectId) -> Optional[ContentModel]:
    return await engine.find_one(ContentModel, ContentModel.id == content_id)


async def get_content(engine: AIOEngine, content_id: ObjectId) -> ContentModel:
    content = await find_content(engine, content_id)
    if content is None:
        logger.warning(f"Content not found for id={content_id}")
        raise NotFoundError("Content not found")
    return content


async def get_visible(engine: AIOEngine, content_id: ObjectId, viewer_id: Optional[ObjectId]) -> ContentModel:
    """Loads the content, reporting items the viewer may not see as missing."""
    content = await get_content(engine, content_id)
    if not await can_view(engine, content, viewer_id):
        logger.warning(f"Content {content_id} is not visible to {viewer_id}")
        raise NotFoundError("Content not found")
    return content


def _revision_filter(content_id: ObjectId, revision: int) -> Dict[str, Any]:
    # Documents written before revisions existed have no field at all.
    expected: Any = revision if revision else {"$in": [0, None]}
    return {"_id": content_id, "revision": expected}


async def mutate_content(
    engine: AIOEngine,
    content_id: ObjectId,
    mutation: Callable[[ContentModel], T],
    visible_to: Optional[ObjectId] = None,
) -> Tuple[ContentModel, T]:
    """
    Applies `mutation` to the stored document as one compare-and-swap write.
    Returns the saved document and whatever `mutation` returned. With
    `visible_to`, items that user may not see are reported as not found.
    """
    collection = engine.get_collection(ContentModel)
    for attempt in range(1, settings.CONTENT_WRITE_RETRIES + 1):
        if visible_to is None:
            content = await get_content(engine, content_id)
        else:
            content = await get_visible(engine, content_id, visible_to)
        expected = content.revision
        result = mutation(content)

        content.revision = expected + 1
        content.last_updated_at = utcnow()
        outcome = await collection.replace_one(
            _revision_filter(content_id, expected), content.model_dump_doc()
        )
        if outcome.matched_count:
            return content, result
        logger.warning(f"Concurrent update on content {content_id}, retrying (attempt {attempt})")

    raise ConflictError("Content was modified concurrently, please retry")


# ------------------------------
# Visibility
# ------------------------------
async def visibility_filter(engine: AIOEngine, viewer_id: Optional[ObjectId]) -> Dict[str, Any]:
    """
    Anonymous viewers see Public items. A signed-in viewer also sees their own
    items and Connections items of authors who have the viewer in their connections.
    """
    public = {"visibility": Visibility.PUBLIC.value}
    if viewer_id is None:
        return public
    authors = await ids_connected_to(engine, viewer_id)
    return {
        "$or": [
            public,
            {"user_id": viewer_id},
            {"visibility": Visibility.CONNECTIONS.value, "user_id": {"$in": authors}},
        ]
    }


async def can_view(engine: AIOEngine, content: ContentModel, viewer_id: Optional[ObjectId]) -> bool:
    if content.visibility == Visibility.PUBLIC or content.is_owned_by(viewer_id):
        return True
    if content.visibility == Visibility.CONNECTIONS and viewer_id is not None:
        return content.user_id in await ids_connected_to(engine, viewer_id)
    return False


# ------------------------------
# Listing
# ------------------------------
async def list_contents(
    engine: AIOEngine,
    criteria: Dict[str, Any],
    viewer_id: Optional[ObjectId],
    skip: int,
    limit: int,
) -> Tuple[List[ContentModel], int]:
    """Newest-first page of the items matching `criteria` that the viewer may see."""
    visible = await visibility_filter(engine, viewer_id)
    filters = {"$and": [criteria, visible]} if criteria else visible
    docs = await engine.find(
        ContentModel,
        filters,
        sort=ContentModel.created_at.desc(),
        skip=skip,
        limit=limit,
    )
    total = await engine.count(ContentModel, filters)
    return docs, total


async def list_saved(engine: AIOEngine, user_id: ObjectId) -> List[ContentModel]:
    return await engine.find(ContentModel, {"saves": user_id}, sort=ContentModel.created_at.desc())


async def list_reposted(engine: AIOEngine, user_id: ObjectId) -> List[ContentModel]:
    return await engine.find(
        ContentModel,
        {"user_id": user_id, "original_content_id": {"$ne": None}},
        sort=ContentModel.created_at.desc(),
    )


async def questions_by_tags(engine: AIOEngine, tags: List[str]) -> List[ContentModel]:
    return await engine.find(
        ContentModel,
        {"content_type": ContentType.QUESTION.value, "tags": {"$in": tags}, "visibility": Visibility.PUBLIC.value},
        sort=ContentModel.created_at.desc(),
    )


async def unanswered_questions(engine: AIOEngine) -> List[ContentModel]:
    return await engine.find(
        ContentModel,
        {
            "content_type": ContentType.QUESTION.value,
            "solved": False,
            "comments.is_answer": {"$ne": True},
            "visibility": Visibility.PUBLIC.value,
        },
        sort=ContentModel.created_at.desc(),
    )


async def trending_questions(engine: AIOEngine) -> List[ContentModel]:
    """Top questions by likes + comments + saves, newest first on ties."""
    pipeline = [
        {"$match": {"content_type": ContentType.QUESTION.value, "visibility": Visibility.PUBLIC.value}},
        {
            "$addFields": {
                "interaction_score": {
                    "$add": [
                        {"$size": {"$ifNull": ["$likes", []]}},
                        {"$size": {"$ifNull": ["$comments", []]}},
                        {"$size": {"$ifNull": ["$saves", []]}},
                    ]
                }
            }
        },
        {"$sort": {"interaction_score": -1, "created_at": -1}},
        {"$limit": TRENDING_LIMIT},
        {"$project": {"interaction_score": 0}},
    ]
    collection = engine.get_collection(ContentModel)
    return [ContentModel.model_validate_doc(doc) async for doc in collection.aggregate(pipeline)]


# ------------------------------
# CRUD
# ------------------------------
def build_content(user_id: ObjectId, payload: ContentCreate, image_url: Optional[str] = None) -> ContentModel:
    typed = parse_payload(payload.content_type, payload.extra_fields)
    return ContentModel(
        user_id=user_id,
        content_type=payload.content_type,
        title=(payload.title or "").strip() or DEFAULT_TITLE,
        image=image_url or payload.image or DEFAULT_IMAGE,
        visibility=payload.visibility,
        tags=[tag.strip() for tag in payload.tags if tag.strip()],
        extra_fields=dump_payload(typed),
    )


async def create_content(
    engine: AIOEngine, user_id: ObjectId, payload: ContentCreate, image_url: Optional[str] = None
) -> ContentModel:
    content = build_content(user_id, payload, image_url)
    await engine.save(content)
    logger.info(f"Content created: id={content.id}, type={content.content_type.value}, user_id={user_id}")
    return content


async def create_many(engine: AIOEngine, user_id: ObjectId, payloads: List[ContentCreate]) -> List[ContentModel]:
    contents = [build_content(user_id, payload) for payload in payloads]
    if contents:
        await engine.save_all(contents)
    logger.info(f"Bulk created {len(contents)} contents for user_id={user_id}")
    return contents


def check_owner(content: ContentModel, user_id: ObjectId, action: str) -> None:
    if not content.is_owned_by(user_id):
        raise PermissionDeniedError(f"Unauthorized to {action} this content")


def apply_update(content: ContentModel, user_id: ObjectId, changes: ContentUpdate, image_url: Optional[str]) -> None:
    check_owner(content, user_id, "update")
    if changes.title:
        content.title = changes.title.strip() or content.title
    if changes.visibility:
        content.visibility = changes.visibility
    if changes.tags is not None:
        content.tags = [tag.strip() for tag in changes.tags if tag.strip()]
    if image_url or changes.image:
        content.image = image_url or changes.image
    if changes.extra_fields:
        content.extra_fields = merge_payload(content.content_type, content.extra_fields, changes.extra_fields)


async def update_content(
    engine: AIOEngine,
    content_id: ObjectId,
    user_id: ObjectId,
    changes: ContentUpdate,
    image_url: Optional[str] = None,
) -> ContentModel:
    content, _ = await mutate_content(
        engine, content_id, lambda c: apply_update(c, user_id, changes, image_url)
    )
    return content


async def delete_content(engine: AIOEngine, content_id: ObjectId, user_id: ObjectId) -> None:
    content = await get_content(engine, content_id)
    check_owner(content, user_id, "delete")
    await engine.delete(content)
    logger.info(f"Content deleted: id={content_id}")


async def author_of(engine: AIOEngine, content: ContentModel) -> Tuple[Optional[str], Optional[str]]:
    """
    Best-effort author identity (name, avatar). Lookup failures are logged and
    reported as (None, None) so the content itself is still served.
    """
    try:
        author = await engine.find_one(UserModel, UserModel.id == content.user_id)
    except PyMongoError as exc:
        logger.warning(f"Error fetching author data for content {content.id}: {exc}")
        return None, None
    if author is None:
        logger.warning(f"Author {content.user_id} of content {content.id} not found")
        return None, None
    return author.username or author.full_name, author.profile_image or DEFAULT_AVATAR


# ------------------------------
# Interactions
# ------------------------------
async def toggle(engine: AIOEngine, content_id: ObjectId, user_id: ObjectId, reaction: Reaction) -> Tuple[ContentModel, bool]:
    return await mutate_content(
        engine,
        content_id,
        lambda c: interactions.toggle_reaction(c, user_id, reaction),
        visible_to=user_id,
    )


async def toggle_repost(
    engine: AIOEngine, content_id: ObjectId, user_id: ObjectId, note: str = ""
) -> Tuple[ContentModel, Optional[ContentModel]]:
    """
    Reposting creates a derived document and records the user on the original;
    reposting again removes both. The two writes are separate documents and are
    not transactional: a failed update of the original deletes the new repost.
    """
    original = await get_visible(engine, content_id, user_id)

    if interactions.has_reacted(original, user_id, Reaction.REPOST):
        await engine.remove(
            ContentModel,
            ContentModel.user_id == user_id,
            ContentModel.original_content_id == content_id,
        )
        updated, _ = await mutate_content(
            engine, content_id, lambda c: _set_reaction(c, user_id, active=False), visible_to=user_id
        )
        logger.info(f"Repost of {content_id} removed for user {user_id}")
        return updated, None

    repost = interactions.build_repost(original, user_id, note)
    await engine.save(repost)
    try:
        updated, _ = await mutate_content(
            engine, content_id, lambda c: _set_reaction(c, user_id, active=True), visible_to=user_id
        )
    except DomainError:
        await engine.delete(repost)
        logger.warning(f"Repost {repost.id} of {content_id} rolled back")
        raise
    logger.info(f"Repost {repost.id} of {content_id} created for user {user_id}")
    return updated, repost


def _set_reaction(content: ContentModel, user_id: ObjectId, active: bool) -> None:
    # A concurrent request may already have flipped it; only toggle when needed.
    if interactions.has_reacted(content, user_id, Reaction.REPOST) != active:
        interactions.toggle_reaction(content, user_id, Reaction.REPOST)


async def comment(
    engine: AIOEngine, content_id: ObjectId, user: UserModel, text: str, is_answer: bool = False
) -> ContentModel:
    content, _ = await mutate_content(
        engine,
        content_id,
        lambda c: interactions.add_comment(c, user.id, user.username, text, is_answer=is_answer),
        visible_to=user.id,
    )
    return content
