"""
Content store queries and the interactions that span documents: visibility,
paging and reposts, run against the in-memory engine from conftest.
"""

from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId

from devnet.core.config import settings
from devnet.core.errors import ConflictError, NotFoundError
from devnet.domains.contents import services
from devnet.domains.contents.interactions import Reaction
from devnet.domains.contents.models import ContentModel, Visibility
from devnet.domains.users.models import UserModel
from devnet.helpers.pagination import PageParams

pytestmark = pytest.mark.anyio


def make_user(engine, name: str, connections=()) -> UserModel:
    return engine.add(
        UserModel(username=name, email=f"{name}@example.com", password_hash="x", connections=list(connections))
    )


@pytest.fixture
def people(fake_engine):
    viewer = make_user(fake_engine, "viewer")
    friend = make_user(fake_engine, "friend", connections=[viewer.id])
    stranger = make_user(fake_engine, "stranger")
    return viewer, friend, stranger


# ------------------------------
# visibility
# ------------------------------
async def test_can_view(fake_engine, content_factory, people):
    viewer, friend, stranger = people
    shared = content_factory(user_id=friend.id, visibility=Visibility.CONNECTIONS)
    hidden = content_factory(user_id=stranger.id, visibility=Visibility.CONNECTIONS)
    private = content_factory(user_id=friend.id, visibility=Visibility.PRIVATE)
    public = content_factory(user_id=stranger.id)

    assert await services.can_view(fake_engine, shared, viewer.id)
    assert not await services.can_view(fake_engine, hidden, viewer.id)
    assert not await services.can_view(fake_engine, private, viewer.id)
    assert await services.can_view(fake_engine, private, friend.id)
    assert await services.can_view(fake_engine, public, None)
    assert not await services.can_view(fake_engine, shared, None)


async def test_listing_applies_visibility(fake_engine, content_factory, people):
    viewer, friend, stranger = people
    mine = fake_engine.add(content_factory(user_id=viewer.id, visibility=Visibility.PRIVATE))
    shared = fake_engine.add(content_factory(user_id=friend.id, visibility=Visibility.CONNECTIONS))
    public = fake_engine.add(content_factory(user_id=stranger.id))
    fake_engine.add(content_factory(user_id=stranger.id, visibility=Visibility.CONNECTIONS))
    fake_engine.add(content_factory(user_id=friend.id, visibility=Visibility.PRIVATE))

    items, total = await services.list_contents(fake_engine, {}, viewer.id, 0, 10)
    assert total == 3
    assert {c.id for c in items} == {mine.id, shared.id, public.id}

    items, total = await services.list_contents(fake_engine, {}, None, 0, 10)
    assert [c.id for c in items] == [public.id]
    assert total == 1


async def test_hidden_item_reads_as_missing(fake_engine, content_factory, people):
    viewer, friend, _ = people
    private = fake_engine.add(content_factory(user_id=friend.id, visibility=Visibility.PRIVATE))

    with pytest.raises(NotFoundError):
        await services.get_visible(fake_engine, private.id, viewer.id)
    assert (await services.get_visible(fake_engine, private.id, friend.id)).id == private.id


# ------------------------------
# paging
# ------------------------------
async def test_second_page(fake_engine, content_factory):
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    created = [
        fake_engine.add(content_factory(title=f"item {i}", created_at=start + timedelta(minutes=i)))
        for i in range(25)
    ]
    page = PageParams(page=2, limit=10)

    items, total = await services.list_contents(fake_engine, {}, None, page.skip, page.limit)

    assert page.skip == 10
    assert total == 25
    newest_first = [c.id for c in reversed(created)]
    assert [c.id for c in items] == newest_first[10:20]
    assert page.meta(total).pages == 3


# ------------------------------
# interactions on hidden items
# ------------------------------
async def test_stranger_cannot_react_to_private_item(fake_engine, content_factory, people):
    _, friend, stranger = people
    private = fake_engine.add(content_factory(user_id=friend.id, visibility=Visibility.PRIVATE))

    with pytest.raises(NotFoundError):
        await services.toggle(fake_engine, private.id, stranger.id, Reaction.LIKE)
    with pytest.raises(NotFoundError):
        await services.comment(fake_engine, private.id, stranger, "hi")

    stored = fake_engine.stored(private.id)
    assert stored.likes == []
    assert stored.comments == []


async def test_connection_can_react_to_shared_item(fake_engine, content_factory, people):
    viewer, friend, _ = people
    shared = fake_engine.add(content_factory(user_id=friend.id, visibility=Visibility.CONNECTIONS))

    _, active = await services.toggle(fake_engine, shared.id, viewer.id, Reaction.SAVE)

    assert active is True
    assert fake_engine.stored(shared.id).saves == [viewer.id]


# ------------------------------
# reposts
# ------------------------------
async def test_repost_round_trip(fake_engine, content_factory, people):
    viewer, friend, _ = people
    original = fake_engine.add(content_factory(user_id=friend.id, title="Original"))

    updated, repost = await services.toggle_repost(fake_engine, original.id, viewer.id, note="+1")

    assert updated.reposts == [viewer.id]
    reposts = await fake_engine.find(ContentModel, {"original_content_id": original.id})
    assert [r.id for r in reposts] == [repost.id]
    assert reposts[0].user_id == viewer.id
    assert reposts[0].extra_fields["repostNote"] == "+1"
    assert [c.id for c in await services.list_reposted(fake_engine, viewer.id)] == [repost.id]

    updated, removed = await services.toggle_repost(fake_engine, original.id, viewer.id)

    assert removed is None
    assert updated.reposts == []
    assert await fake_engine.count(ContentModel, {"original_content_id": original.id}) == 0


async def test_private_item_cannot_be_reposted(fake_engine, content_factory, people):
    _, friend, stranger = people
    private = fake_engine.add(content_factory(user_id=friend.id, visibility=Visibility.PRIVATE))

    with pytest.raises(NotFoundError):
        await services.toggle_repost(fake_engine, private.id, stranger.id)

    assert await fake_engine.count(ContentModel) == 1
    assert fake_engine.stored(private.id).reposts == []


async def test_failed_repost_leaves_no_copy(fake_engine, content_factory, people):
    viewer, friend, _ = people
    original = fake_engine.add(content_factory(user_id=friend.id))
    for revision in range(1, settings.CONTENT_WRITE_RETRIES + 1):
        racing = original.model_dump_doc()
        racing["revision"] = revision
        fake_engine.collection.interleaved.append(racing)

    with pytest.raises(ConflictError):
        await services.toggle_repost(fake_engine, original.id, viewer.id)

    assert await fake_engine.count(ContentModel, {"original_content_id": original.id}) == 0
    assert await fake_engine.count(ContentModel) == 1
