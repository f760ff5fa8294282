"""
devnet/domains/contents/schemas.py

Pydantic schemas for the content API:
- ContentCreate / ContentUpdate: request bodies (sent as a JSON `payload` form field)
- ContentOut, CommentOut, VoteOut: response DTOs
- request bodies for comments, answers, votes and reposts
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field as PydField

from devnet.domains.contents.models import (
    CommentModel,
    ContentModel,
    ContentType,
    Visibility,
    VoteType,
)
from devnet.domains.contents.payloads import dump_payload, load_payload
from devnet.helpers.pagination import PageMeta
from devnet.helpers.serialize import APIModel, oid_to_str, oids_to_str


# ------------------------------
# Requests
# ------------------------------
class ContentCreate(APIModel):
    content_type: ContentType
    title: Optional[str] = None
    visibility: Visibility = Visibility.PUBLIC
    image: Optional[str] = None
    tags: List[str] = PydField(default_factory=list)
    extra_fields: Dict[str, Any] = PydField(default_factory=dict)


class ContentUpdate(APIModel):
    title: Optional[str] = None
    visibility: Optional[Visibility] = None
    image: Optional[str] = None
    tags: Optional[List[str]] = None
    extra_fields: Optional[Dict[str, Any]] = None


class TextBody(APIModel):
    text: str = ""


class RepostBody(APIModel):
    repost_note: str = ""


class AcceptAnswerBody(APIModel):
    comment_index: int


class VoteAnswerBody(APIModel):
    comment_index: int
    direction: str


# ------------------------------
# Responses
# ------------------------------
class VoteOut(APIModel):
    user_id: str
    vote_type: VoteType


class CommentOut(APIModel):
    user_id: str
    username: str
    text: str
    created_at: datetime
    is_answer: bool = False
    votes: int = 0
    accepted_answer: bool = False
    voted_by: List[VoteOut] = PydField(default_factory=list)


class ContentOut(APIModel):
    id: str = PydField(..., alias="_id")
    user_id: str
    content_type: ContentType
    title: str
    image: str
    visibility: Visibility
    created_at: datetime
    last_updated_at: datetime
    likes: List[str] = PydField(default_factory=list)
    dislikes: List[str] = PydField(default_factory=list)
    saves: List[str] = PydField(default_factory=list)
    reposts: List[str] = PydField(default_factory=list)
    comments: List[CommentOut] = PydField(default_factory=list)
    original_content_id: Optional[str] = None
    solved: bool = False
    tags: List[str] = PydField(default_factory=list)
    extra_fields: Dict[str, Any] = PydField(default_factory=dict)
    author_name: Optional[str] = None
    author_avatar: Optional[str] = None


class ContentPage(APIModel):
    contents: List[ContentOut]
    pagination: PageMeta


class ContentMessage(APIModel):
    message: str
    content: ContentOut


class RepostMessage(ContentMessage):
    repost: Optional[ContentOut] = None


class CommentsMessage(APIModel):
    message: str
    comments: List[CommentOut]


# ------------------------------
# Convenience converters
# ------------------------------
def comment_to_dto(comment: CommentModel) -> CommentOut:
    return CommentOut(
        user_id=oid_to_str(comment.user_id),
        username=comment.username,
        text=comment.text,
        created_at=comment.created_at,
        is_answer=comment.is_answer,
        votes=comment.votes,
        accepted_answer=comment.accepted_answer,
        voted_by=[VoteOut(user_id=voter, vote_type=vote) for voter, vote in comment.voted_by.items()],
    )


def contentmodel_to_dto(
    content: ContentModel,
    author_name: Optional[str] = None,
    author_avatar: Optional[str] = None,
) -> ContentOut:
    """
    Convert an Odmantic ContentModel to the ContentOut DTO. The payload goes
    through the typed union so clients only ever see the current field names.
    """
    return ContentOut(
        **{
            "_id": oid_to_str(content.id),
            "user_id": oid_to_str(content.user_id),
            "content_type": content.content_type,
            "title": content.title,
            "image": content.image,
            "visibility": content.visibility,
            "created_at": content.created_at,
            "last_updated_at": content.last_updated_at,
            "likes": oids_to_str(content.likes),
            "dislikes": oids_to_str(content.dislikes),
            "saves": oids_to_str(content.saves),
            "reposts": oids_to_str(content.reposts),
            "comments": [comment_to_dto(c) for c in content.comments],
            "original_content_id": oid_to_str(content.original_content_id),
            "solved": content.solved,
            "tags": content.tags,
            "extra_fields": dump_payload(load_payload(content.content_type, content.extra_fields)),
            "author_name": author_name,
            "author_avatar": author_avatar,
        }
    )


def contents_to_page(contents: List[ContentModel], meta: PageMeta) -> ContentPage:
    return ContentPage(contents=[contentmodel_to_dto(c) for c in contents], pagination=meta)
