# devnet/api/endpoints/interactions.py
"""
Social interactions and Q&A routes, mounted under the same /api/contents prefix
as the content routes. This router is included first so that `/saved`,
`/reposted` and `/questions/...` are not captured by `/{content_id}`.
"""

import logging
from typing import List, Optional

from bson import ObjectId
from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status
from odmantic import AIOEngine

from devnet.core.security import get_current_user_id
from devnet.db.session import get_engine
from devnet.domains.contents import services as content_services
from devnet.domains.contents.interactions import Reaction, accept_answer, vote_answer
from devnet.domains.contents.models import VoteType
from devnet.domains.contents.schemas import (
    AcceptAnswerBody,
    CommentsMessage,
    ContentMessage,
    ContentOut,
    RepostBody,
    RepostMessage,
    TextBody,
    VoteAnswerBody,
    comment_to_dto,
    contentmodel_to_dto,
)
from devnet.domains.users.services import get_user
from devnet.helpers.serialize import parse_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contents", tags=["interactions"])

_TOGGLE_MESSAGES = {
    Reaction.LIKE: ("Content liked", "Like removed"),
    Reaction.DISLIKE: ("Content disliked", "Dislike removed"),
    Reaction.SAVE: ("Content saved", "Content unsaved"),
}


# -------------------------
# Caller's collections
# -------------------------
@router.get("/saved", response_model=List[ContentOut])
async def saved_contents(
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return [contentmodel_to_dto(c) for c in await content_services.list_saved(engine, user_id)]


@router.get("/reposted", response_model=List[ContentOut])
async def reposted_contents(
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return [contentmodel_to_dto(c) for c in await content_services.list_reposted(engine, user_id)]


# -------------------------
# Questions
# -------------------------
@router.get("/questions/tags", response_model=List[ContentOut])
async def questions_by_tags(tags: Optional[str] = Query(None), engine: AIOEngine = Depends(get_engine)):
    wanted = [tag.strip() for tag in (tags or "").split(",") if tag.strip()]
    if not wanted:
        raise HTTPException(status_code=400, detail="Tags are required")
    return [contentmodel_to_dto(c) for c in await content_services.questions_by_tags(engine, wanted)]


@router.get("/questions/unanswered", response_model=List[ContentOut])
async def unanswered_questions(engine: AIOEngine = Depends(get_engine)):
    return [contentmodel_to_dto(c) for c in await content_services.unanswered_questions(engine)]


@router.get("/questions/trending", response_model=List[ContentOut])
async def trending_questions(engine: AIOEngine = Depends(get_engine)):
    return [contentmodel_to_dto(c) for c in await content_services.trending_questions(engine)]


# -------------------------
# Toggles
# -------------------------
async def _toggle(engine: AIOEngine, content_id: str, user_id: ObjectId, reaction: Reaction) -> ContentMessage:
    content, active = await content_services.toggle(
        engine, parse_object_id(content_id, "content ID"), user_id, reaction
    )
    on, off = _TOGGLE_MESSAGES[reaction]
    return ContentMessage(message=on if active else off, content=contentmodel_to_dto(content))


@router.post("/{content_id}/like", response_model=ContentMessage)
async def like(
    content_id: str,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return await _toggle(engine, content_id, user_id, Reaction.LIKE)


@router.post("/{content_id}/dislike", response_model=ContentMessage)
async def dislike(
    content_id: str,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return await _toggle(engine, content_id, user_id, Reaction.DISLIKE)


@router.post("/{content_id}/save", response_model=ContentMessage)
async def save(
    content_id: str,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return await _toggle(engine, content_id, user_id, Reaction.SAVE)


@router.post("/{content_id}/repost", response_model=RepostMessage)
async def repost(
    content_id: str,
    response: Response,
    body: Optional[RepostBody] = Body(None),
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    note = body.repost_note if body else ""
    original, created = await content_services.toggle_repost(
        engine, parse_object_id(content_id, "content ID"), user_id, note
    )
    if created is None:
        return RepostMessage(message="Repost removed", content=contentmodel_to_dto(original))
    response.status_code = status.HTTP_201_CREATED
    return RepostMessage(
        message="Content reposted",
        content=contentmodel_to_dto(original),
        repost=contentmodel_to_dto(created),
    )


# -------------------------
# Comments and answers
# -------------------------
async def _post_comment(
    engine: AIOEngine, content_id: str, user_id: ObjectId, text: str, is_answer: bool
) -> CommentsMessage:
    cid = parse_object_id(content_id, "content ID")
    user = await get_user(engine, user_id)
    content = await content_services.comment(engine, cid, user, text, is_answer=is_answer)
    return CommentsMessage(
        message="Answer added" if is_answer else "Comment added",
        comments=[comment_to_dto(c) for c in content.comments],
    )


@router.post("/{content_id}/comment", response_model=CommentsMessage, status_code=status.HTTP_201_CREATED)
async def add_comment(
    content_id: str,
    body: TextBody,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return await _post_comment(engine, content_id, user_id, body.text, is_answer=False)


@router.post("/{content_id}/answer", response_model=CommentsMessage, status_code=status.HTTP_201_CREATED)
async def add_answer(
    content_id: str,
    body: TextBody,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return await _post_comment(engine, content_id, user_id, body.text, is_answer=True)


@router.post("/{content_id}/accept-answer", response_model=ContentMessage)
async def accept(
    content_id: str,
    body: AcceptAnswerBody,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    content, _ = await content_services.mutate_content(
        engine,
        parse_object_id(content_id, "content ID"),
        lambda c: accept_answer(c, user_id, body.comment_index),
        visible_to=user_id,
    )
    return ContentMessage(message="Answer accepted", content=contentmodel_to_dto(content))


@router.post("/{content_id}/vote-answer", response_model=ContentMessage)
async def vote(
    content_id: str,
    body: VoteAnswerBody,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    try:
        direction = VoteType(body.direction)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid vote type")
    content, _ = await content_services.mutate_content(
        engine,
        parse_object_id(content_id, "content ID"),
        lambda c: vote_answer(c, user_id, body.comment_index, direction),
        visible_to=user_id,
    )
    logger.info(f"User {user_id} voted {direction.value} on answer {body.comment_index} of {content_id}")
    return ContentMessage(message="Vote recorded", content=contentmodel_to_dto(content))
