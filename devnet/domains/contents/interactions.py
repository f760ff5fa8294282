"""
Interaction engine: the state transitions behind like/dislike/save/repost,
comments, answers, answer votes and answer acceptance.

Every function here mutates an in-memory ContentModel and raises a DomainError
when the transition is not allowed. Nothing here touches the database; the
content service loads the document, applies one of these functions and writes
the result back with a revision check.
"""

import logging
from enum import Enum
from typing import List, Optional

from bson import ObjectId

from devnet.core.errors import BadRequestError, PermissionDeniedError
from devnet.domains.contents.models import (
    CommentModel,
    ContentModel,
    ContentType,
    Visibility,
    VoteType,
    utcnow,
)

logger = logging.getLogger(__name__)


class Reaction(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"
    SAVE = "save"
    REPOST = "repost"


# reaction -> (set it toggles, set it clears on activation)
_REACTION_SETS = {
    Reaction.LIKE: ("likes", "dislikes"),
    Reaction.DISLIKE: ("dislikes", "likes"),
    Reaction.SAVE: ("saves", None),
    Reaction.REPOST: ("reposts", None),
}


class NotAQuestionError(BadRequestError):
    def __init__(self):
        super().__init__("This content is not a question")


class InvalidCommentIndexError(BadRequestError):
    def __init__(self):
        super().__init__("Invalid comment index")


class NotAnAnswerError(BadRequestError):
    def __init__(self):
        super().__init__("The selected comment is not an answer")


class AlreadyVotedError(BadRequestError):
    def __init__(self, direction: VoteType):
        verb = "upvoted" if direction is VoteType.UP else "downvoted"
        super().__init__(f"You have already {verb} this answer")


def _without(ids: List[ObjectId], user_id: ObjectId) -> List[ObjectId]:
    return [existing for existing in ids if existing != user_id]


def toggle_reaction(content: ContentModel, user_id: ObjectId, reaction: Reaction) -> bool:
    """
    Adds the user to the reaction's set, or removes them if already present.
    Activating like clears a dislike by the same user and vice versa.
    Returns True when the reaction is active afterwards.
    """
    target, opposite = _REACTION_SETS[Reaction(reaction)]
    members = getattr(content, target)

    if user_id in members:
        setattr(content, target, _without(members, user_id))
        return False

    setattr(content, target, [*members, user_id])
    if opposite:
        setattr(content, opposite, _without(getattr(content, opposite), user_id))
    return True


def has_reacted(content: ContentModel, user_id: ObjectId, reaction: Reaction) -> bool:
    target, _ = _REACTION_SETS[Reaction(reaction)]
    return user_id in getattr(content, target)


def build_repost(original: ContentModel, user_id: ObjectId, note: str = "") -> ContentModel:
    """
    A repost is a new public Content owned by the reposting user that copies the
    original's type, title, image and stored payload and points back at it.
    """
    extra_fields = {**original.extra_fields, "repostNote": note or ""}

    return ContentModel(
        user_id=user_id,
        content_type=original.content_type,
        title=original.title,
        image=original.image,
        visibility=Visibility.PUBLIC,
        original_content_id=original.id,
        tags=list(original.tags),
        extra_fields=extra_fields,
    )


def add_comment(
    content: ContentModel,
    user_id: ObjectId,
    username: Optional[str],
    text: str,
    is_answer: bool = False,
) -> CommentModel:
    text = (text or "").strip()
    if not text:
        kind = "Answer" if is_answer else "Comment"
        raise BadRequestError(f"{kind} text cannot be empty")
    if is_answer:
        _require_question(content)

    comment = CommentModel(
        user_id=user_id,
        username=username or "Unknown User",
        text=text,
        created_at=utcnow(),
        is_answer=is_answer,
    )
    content.comments = [*content.comments, comment]
    return comment


def _require_question(content: ContentModel) -> None:
    if content.content_type != ContentType.QUESTION:
        raise NotAQuestionError()


def _answer_at(content: ContentModel, index: int) -> CommentModel:
    if index < 0 or index >= len(content.comments):
        raise InvalidCommentIndexError()
    comment = content.comments[index]
    if not comment.is_answer:
        raise NotAnAnswerError()
    return comment


def accept_answer(content: ContentModel, user_id: ObjectId, index: int) -> CommentModel:
    """
    Marks the answer at `index` as the accepted one and the question as solved.
    Any previously accepted answer loses the flag; `solved` never goes back to False.
    """
    _require_question(content)
    if not content.is_owned_by(user_id):
        raise PermissionDeniedError("Only the question owner can accept an answer")
    answer = _answer_at(content, index)

    for position, comment in enumerate(content.comments):
        comment.accepted_answer = position == index
    content.solved = True
    logger.info(f"Answer {index} accepted on question {content.id}")
    return answer


def vote_answer(content: ContentModel, user_id: ObjectId, index: int, direction: VoteType) -> CommentModel:
    """
    Records the user's vote on the answer at `index`.

    none -> up/down adds the vote (score +1/-1); switching direction replaces it
    in place (score +2/-2); repeating the current direction is rejected.
    """
    direction = VoteType(direction)
    _require_question(content)
    answer = _answer_at(content, index)

    voter = str(user_id)
    current = answer.voted_by.get(voter)
    if current is not None and VoteType(current) is direction:
        raise AlreadyVotedError(direction)

    answer.voted_by = {**answer.voted_by, voter: direction}
    return answer
