import pytest
from bson import ObjectId

from devnet.core.errors import BadRequestError, PermissionDeniedError
from devnet.domains.contents.interactions import (
    AlreadyVotedError,
    InvalidCommentIndexError,
    NotAnAnswerError,
    NotAQuestionError,
    Reaction,
    accept_answer,
    add_comment,
    build_repost,
    has_reacted,
    toggle_reaction,
    vote_answer,
)
from devnet.domains.contents.models import ContentType, Visibility, VoteType


# ------------------------------
# like / dislike / save
# ------------------------------
def test_like_toggles_on_and_off(content_factory):
    content = content_factory()
    user = ObjectId()

    assert toggle_reaction(content, user, Reaction.LIKE) is True
    assert content.likes == [user]
    assert toggle_reaction(content, user, Reaction.LIKE) is False
    assert content.likes == []


def test_like_and_dislike_are_exclusive(content_factory):
    content = content_factory()
    user, other = ObjectId(), ObjectId()
    toggle_reaction(content, other, Reaction.DISLIKE)

    toggle_reaction(content, user, Reaction.DISLIKE)
    toggle_reaction(content, user, Reaction.LIKE)

    assert content.likes == [user]
    assert content.dislikes == [other]

    toggle_reaction(content, user, Reaction.DISLIKE)
    assert content.likes == []
    assert set(content.dislikes) == {user, other}


def test_save_does_not_touch_likes(content_factory):
    content = content_factory()
    user = ObjectId()
    toggle_reaction(content, user, Reaction.LIKE)
    toggle_reaction(content, user, Reaction.SAVE)

    assert has_reacted(content, user, Reaction.SAVE)
    assert has_reacted(content, user, Reaction.LIKE)


# ------------------------------
# reposts
# ------------------------------
def test_repost_copies_original(content_factory):
    original = content_factory(
        ContentType.JOB,
        title="Backend engineer",
        image="/uploads/contents/job.png",
        visibility=Visibility.CONNECTIONS,
        tags=["python"],
        extra_fields={"company": "Acme", "description": "Build APIs"},
    )
    reposter = ObjectId()

    repost = build_repost(original, reposter, note="Worth a look")

    assert repost.user_id == reposter
    assert repost.original_content_id == original.id
    assert repost.visibility == Visibility.PUBLIC
    assert repost.content_type == ContentType.JOB
    assert repost.title == "Backend engineer"
    assert repost.image == "/uploads/contents/job.png"
    assert repost.extra_fields["company"] == "Acme"
    assert repost.extra_fields["repostNote"] == "Worth a look"
    assert repost.id != original.id


def test_repost_keeps_legacy_and_unmodelled_payload_keys(content_factory):
    original = content_factory(
        title="Untitled",
        extra_fields={"postTitle": "Legacy hello", "postImage": "/old.png", "pinnedBy": "mods"},
    )

    repost = build_repost(original, ObjectId())

    assert repost.extra_fields["postTitle"] == "Legacy hello"
    assert repost.extra_fields["postImage"] == "/old.png"
    assert repost.extra_fields["pinnedBy"] == "mods"
    assert repost.extra_fields["repostNote"] == ""
    assert original.extra_fields == {"postTitle": "Legacy hello", "postImage": "/old.png", "pinnedBy": "mods"}


# ------------------------------
# comments and answers
# ------------------------------
def test_comment_is_trimmed_and_appended(content_factory):
    content = content_factory()
    user = ObjectId()

    comment = add_comment(content, user, "ada", "  nice post  ")

    assert comment.text == "nice post"
    assert comment.username == "ada"
    assert content.comments[-1].user_id == user
    assert not comment.is_answer


@pytest.mark.parametrize("text", ["", "   ", None])
def test_empty_comment_rejected(content_factory, text):
    with pytest.raises(BadRequestError):
        add_comment(content_factory(), ObjectId(), "ada", text)


def test_answer_requires_question(content_factory):
    with pytest.raises(NotAQuestionError):
        add_comment(content_factory(ContentType.POST), ObjectId(), "ada", "use reversed()", is_answer=True)


def test_answer_on_question(question):
    answer = add_comment(question, ObjectId(), "ada", "use reversed()", is_answer=True)
    assert answer.is_answer
    assert answer.votes == 0
    assert answer.voted_by == {}


# ------------------------------
# accepting answers
# ------------------------------
def _with_answers(question, count=2):
    for i in range(count):
        add_comment(question, ObjectId(), f"user{i}", f"answer {i}", is_answer=True)
    return question


def test_owner_accepts_answer(question):
    _with_answers(question)

    accept_answer(question, question.user_id, 1)

    assert question.solved
    assert [c.accepted_answer for c in question.comments] == [False, True]


def test_accepting_another_answer_moves_the_flag(question):
    _with_answers(question)
    accept_answer(question, question.user_id, 0)
    accept_answer(question, question.user_id, 1)

    assert [c.accepted_answer for c in question.comments] == [False, True]
    assert question.solved


def test_only_owner_can_accept(question):
    _with_answers(question)
    with pytest.raises(PermissionDeniedError):
        accept_answer(question, ObjectId(), 0)
    assert not question.solved


@pytest.mark.parametrize("index", [-1, 2, 10])
def test_accept_rejects_bad_index(question, index):
    _with_answers(question)
    with pytest.raises(InvalidCommentIndexError):
        accept_answer(question, question.user_id, index)


def test_accept_rejects_plain_comment(question):
    add_comment(question, ObjectId(), "ada", "just a comment")
    with pytest.raises(NotAnAnswerError):
        accept_answer(question, question.user_id, 0)


def test_accept_on_non_question(content_factory):
    post = content_factory(ContentType.POST)
    with pytest.raises(NotAQuestionError):
        accept_answer(post, post.user_id, 0)


# ------------------------------
# voting on answers
# ------------------------------
def test_vote_transitions(question):
    _with_answers(question, 1)
    voter = ObjectId()

    vote_answer(question, voter, 0, VoteType.UP)
    assert question.comments[0].votes == 1

    with pytest.raises(AlreadyVotedError, match="already upvoted"):
        vote_answer(question, voter, 0, VoteType.UP)

    vote_answer(question, voter, 0, VoteType.DOWN)
    assert question.comments[0].votes == -1
    assert question.comments[0].voted_by == {str(voter): VoteType.DOWN}

    with pytest.raises(AlreadyVotedError, match="already downvoted"):
        vote_answer(question, voter, 0, VoteType.DOWN)

    vote_answer(question, voter, 0, VoteType.UP)
    assert question.comments[0].votes == 1


def test_votes_from_several_users(question):
    _with_answers(question, 1)
    for _ in range(3):
        vote_answer(question, ObjectId(), 0, VoteType.UP)
    vote_answer(question, ObjectId(), 0, "down")

    assert question.comments[0].votes == 2
    assert len(question.comments[0].voted_by) == 4


def test_vote_requires_answer(question):
    add_comment(question, ObjectId(), "ada", "just a comment")
    with pytest.raises(NotAnAnswerError):
        vote_answer(question, ObjectId(), 0, VoteType.UP)
