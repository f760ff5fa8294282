from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from odmantic import EmbeddedModel, Field as OdmField, Model, ObjectId


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContentType(str, Enum):
    POST = "Post"
    JOB = "Job"
    EVENT = "Event"
    PROJECT = "Project"
    TUTORIAL = "Tutorial"
    BOOKS = "Books"
    QUESTION = "Question"


class Visibility(str, Enum):
    PUBLIC = "Public"
    CONNECTIONS = "Connections"
    PRIVATE = "Private"


class VoteType(str, Enum):
    UP = "up"
    DOWN = "down"

    @property
    def weight(self) -> int:
        return 1 if self is VoteType.UP else -1


DEFAULT_TITLE = "Untitled"
DEFAULT_IMAGE = "/default-content.gif"


class CommentModel(EmbeddedModel):
    """
    A comment on a content item. On Question content a comment may be an answer,
    which can then be voted on and accepted.

    `voted_by` maps the voter's user id (as a string) to their vote, so a user
    has at most one vote per answer. The score is derived from it.
    """
    user_id: ObjectId
    username: str = "Unknown User"  # snapshot taken when the comment is written
    text: str
    created_at: datetime = OdmField(default_factory=utcnow)
    is_answer: bool = False
    accepted_answer: bool = False
    voted_by: Dict[str, VoteType] = OdmField(default_factory=dict)

    @property
    def votes(self) -> int:
        return sum(VoteType(vote).weight for vote in self.voted_by.values())


class ContentModel(Model):
    """
    Odmantic model for the 'contents' collection: one polymorphic feed item.

    - `extra_fields` holds the per-type payload; read and write it through
      `devnet.domains.contents.payloads`, never by key.
    - `likes`/`dislikes`/`saves`/`reposts` are user id sets kept as lists.
    - A repost is its own document pointing at its source via `original_content_id`.
    - `revision` is bumped on every write and guards concurrent updates.
    """
    user_id: ObjectId
    content_type: ContentType

    title: str = OdmField(default=DEFAULT_TITLE)
    image: str = OdmField(default=DEFAULT_IMAGE)
    visibility: Visibility = OdmField(default=Visibility.PUBLIC)

    created_at: datetime = OdmField(default_factory=utcnow)
    last_updated_at: datetime = OdmField(default_factory=utcnow)

    likes: List[ObjectId] = OdmField(default_factory=list)
    dislikes: List[ObjectId] = OdmField(default_factory=list)
    saves: List[ObjectId] = OdmField(default_factory=list)
    reposts: List[ObjectId] = OdmField(default_factory=list)
    comments: List[CommentModel] = OdmField(default_factory=list)
    original_content_id: Optional[ObjectId] = OdmField(default=None)

    # Question-specific
    solved: bool = False
    tags: List[str] = OdmField(default_factory=list)

    extra_fields: Dict[str, Any] = OdmField(default_factory=dict)
    revision: int = 0

    model_config = {"collection": "contents"}

    def is_owned_by(self, user_id: Optional[ObjectId]) -> bool:
        return user_id is not None and self.user_id == user_id
