from bson import ObjectId

from devnet.domains.contents.models import ContentType
from devnet.domains.search.services import CONTENT_SEARCH_FIELDS, normalize_content
from devnet.domains.users.services import contains_pattern
from devnet.helpers.pagination import PageMeta


def test_title_prefers_root(content_factory):
    hit = normalize_content(content_factory(title="Root title", extra_fields={"postTitle": "Old"}))
    assert hit.title == "Root title"


def test_untitled_root_falls_back_to_legacy_title(content_factory):
    content = content_factory(ContentType.TUTORIAL, title="Untitled", extra_fields={"tutorialTitle": "Legacy"})
    assert normalize_content(content).title == "Legacy"


def test_blank_root_and_no_legacy_title(content_factory):
    hit = normalize_content(content_factory(title=""))
    assert hit.title == "Untitled"
    assert hit.description == "No description"


def test_image_fallback_chain(content_factory):
    assert normalize_content(content_factory(image="", extra_fields={"postImage": "/p.png"})).image == "/p.png"
    assert normalize_content(content_factory(image="")).image == "/default-content.gif"


def test_hit_shape(content_factory):
    content = content_factory(ContentType.QUESTION, title="Q", extra_fields={"description": "why?"})
    dumped = normalize_content(content).model_dump(by_alias=True)

    assert dumped["_id"] == str(content.id)
    assert dumped["userId"] == str(content.user_id)
    assert dumped["type"] == ContentType.QUESTION
    assert dumped["contentType"] == ContentType.QUESTION
    assert dumped["description"] == "why?"


def test_search_pattern_is_literal_and_case_insensitive():
    pattern = contains_pattern(" C++ (advanced) ")
    assert pattern.search("Modern c++ (Advanced) patterns")
    assert not pattern.search("C (advanced)")


def test_search_fields_cover_legacy_titles():
    assert {"extra_fields.postTitle", "extra_fields.tutorialTitle", "title"} <= set(CONTENT_SEARCH_FIELDS)


def test_page_meta():
    assert PageMeta.build(total=0, page=1, limit=10).pages == 0
    assert PageMeta.build(total=10, page=1, limit=10).pages == 1
    assert PageMeta.build(total=21, page=3, limit=10).model_dump() == {"total": 21, "page": 3, "pages": 3}


def test_object_ids_render_as_strings(content_factory):
    user = ObjectId()
    hit = normalize_content(content_factory(user_id=user))
    assert hit.user_id == str(user)


def test_blank_legacy_keys_are_skipped(content_factory):
    content = content_factory(
        title="",
        image="",
        extra_fields={"title": "", "postTitle": "Legacy hello", "image": "  ", "postImage": "/p.png"},
    )
    hit = normalize_content(content)

    assert hit.title == "Legacy hello"
    assert hit.image == "/p.png"
