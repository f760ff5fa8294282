"""
Search across users and content with a single query string.

Both collections are queried concurrently with a case-insensitive substring
match over a fixed set of fields; content hits are flattened into one shape
regardless of their type.
"""

import asyncio
import logging
from datetime import datetime
from typing import List, Optional

from odmantic import AIOEngine
from pydantic import Field as PydField

from devnet.domains.contents.models import DEFAULT_IMAGE, DEFAULT_TITLE, ContentModel, ContentType, Visibility
from devnet.domains.contents.payloads import load_payload
from devnet.domains.users.models import UserModel
from devnet.domains.users.schemas import UserPublic, usermodel_to_public
from devnet.domains.users.services import contains_pattern, search_users
from devnet.helpers.serialize import APIModel, oid_to_str

logger = logging.getLogger(__name__)

CONTENT_SEARCH_FIELDS = (
    "title",
    "content_type",
    "extra_fields.description",
    "extra_fields.tags",
    # older documents kept the title inside the payload
    "extra_fields.title",
    "extra_fields.postTitle",
    "extra_fields.tutorialTitle",
)

NO_DESCRIPTION = "No description"


class ContentHit(APIModel):
    id: str = PydField(..., alias="_id")
    user_id: str
    title: str
    description: str
    image: str
    type: ContentType
    content_type: ContentType
    created_at: datetime


class SearchResults(APIModel):
    users: List[UserPublic]
    contents: List[ContentHit]


def _present(value: Optional[str], placeholder: Optional[str] = None) -> Optional[str]:
    if value and value.strip() and value != placeholder:
        return value
    return None


def normalize_content(content: ContentModel) -> ContentHit:
    """
    Title falls back from the root field to the legacy payload keys (title,
    postTitle, tutorialTitle); a root still holding the "Untitled" placeholder
    counts as missing. Image falls back the same way.
    """
    payload = load_payload(content.content_type, content.extra_fields)
    title = _present(content.title, DEFAULT_TITLE) or _present(payload.legacy_title) or DEFAULT_TITLE
    image = _present(content.image) or _present(payload.legacy_image) or DEFAULT_IMAGE
    return ContentHit(
        **{
            "_id": oid_to_str(content.id),
            "user_id": oid_to_str(content.user_id),
            "title": title,
            "description": _present(payload.description) or NO_DESCRIPTION,
            "image": image,
            "type": content.content_type,
            "content_type": content.content_type,
            "created_at": content.created_at,
        }
    )


async def search_contents(engine: AIOEngine, term: str) -> List[ContentModel]:
    pattern = contains_pattern(term)
    return await engine.find(
        ContentModel,
        {
            "visibility": Visibility.PUBLIC.value,
            "$or": [{field: {"$regex": pattern}} for field in CONTENT_SEARCH_FIELDS],
        },
        sort=ContentModel.created_at.desc(),
    )


async def search(engine: AIOEngine, term: str) -> SearchResults:
    users, contents = await asyncio.gather(
        search_users(engine, term),
        search_contents(engine, term),
    )
    logger.info(f"Search q={term!r}: {len(users)} users, {len(contents)} contents")
    return build_results(users, contents)


def build_results(users: List[UserModel], contents: List[ContentModel]) -> SearchResults:
    return SearchResults(
        users=[usermodel_to_public(u, include_email=False) for u in users],
        contents=[normalize_content(c) for c in contents],
    )
