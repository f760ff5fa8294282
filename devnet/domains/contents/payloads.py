"""
Typed per-type payloads for content items.

Each content type owns one payload model; together they form a discriminated
union keyed by `kind` (the content type). Documents keep the payload under
`extra_fields` as a plain mapping, and this module is the only place that
turns that mapping into a typed value.

Older documents stored their title and image inside the payload under several
names. Those keys are accepted when reading (never when writing) and surface as
`legacy_title` / `legacy_image`.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from devnet.core.errors import BadRequestError
from devnet.domains.contents.models import ContentType

LEGACY_TITLE_KEYS = ("title", "postTitle", "tutorialTitle", "jobTitle")
LEGACY_IMAGE_KEYS = ("image", "postImage")
_LEGACY_FIELDS = ("legacy_title", "legacyTitle", "legacy_image", "legacyImage")


class PayloadBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    description: str = ""
    tags: List[str] = Field(default_factory=list)
    repost_note: str = ""

    legacy_title: Optional[str] = Field(default=None, exclude=True)
    legacy_image: Optional[str] = Field(default=None, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def fold_legacy_keys(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        data = {k: v for k, v in data.items() if k not in _LEGACY_FIELDS}
        title = _first_filled(data, LEGACY_TITLE_KEYS)
        image = _first_filled(data, LEGACY_IMAGE_KEYS)
        if title is not None:
            data["legacy_title"] = title
        if image is not None:
            data["legacy_image"] = image
        return data


def _first_filled(data: Mapping[str, Any], keys) -> Optional[str]:
    """First value under `keys` that is a non-blank string."""
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


class PostPayload(PayloadBase):
    kind: Literal[ContentType.POST] = ContentType.POST


class JobPayload(PayloadBase):
    kind: Literal[ContentType.JOB] = ContentType.JOB
    company: str = ""
    location: str = ""
    type: str = "Full-time"
    salary: str = ""
    requirements: str = ""
    contact_email: str = ""
    application_url: str = ""


class EventPayload(PayloadBase):
    kind: Literal[ContentType.EVENT] = ContentType.EVENT
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: str = ""
    is_online: bool = False
    registration_url: str = ""


class ProjectPayload(PayloadBase):
    kind: Literal[ContentType.PROJECT] = ContentType.PROJECT
    repository_url: str = ""
    live_url: str = ""
    technologies: List[str] = Field(default_factory=list)
    status: str = ""


class TutorialPayload(PayloadBase):
    kind: Literal[ContentType.TUTORIAL] = ContentType.TUTORIAL
    difficulty: str = ""
    duration: str = ""
    body: str = ""
    prerequisites: List[str] = Field(default_factory=list)


class BooksPayload(PayloadBase):
    kind: Literal[ContentType.BOOKS] = ContentType.BOOKS
    author: str = ""
    isbn: str = ""
    publisher: str = ""
    published_year: Optional[int] = None


class QuestionPayload(PayloadBase):
    kind: Literal[ContentType.QUESTION] = ContentType.QUESTION
    body: str = ""


ContentPayload = Annotated[
    Union[
        PostPayload,
        JobPayload,
        EventPayload,
        ProjectPayload,
        TutorialPayload,
        BooksPayload,
        QuestionPayload,
    ],
    Field(discriminator="kind"),
]

_payload_adapter: TypeAdapter = TypeAdapter(ContentPayload)


def _writable_keys(content_type: ContentType) -> set:
    model = type(load_payload(content_type, {}))
    keys = set()
    for name, field in model.model_fields.items():
        if field.exclude or name == "kind":
            continue
        keys.update({name, field.alias or name})
    return keys


def _validate(content_type: ContentType, raw: Dict[str, Any]) -> ContentPayload:
    return _payload_adapter.validate_python({**raw, "kind": ContentType(content_type)})


def load_payload(content_type: ContentType, data: Optional[Mapping[str, Any]]) -> ContentPayload:
    """
    Reads a stored payload. Unknown keys are dropped and legacy keys are folded
    into `legacy_title` / `legacy_image`.
    """
    raw = dict(data or {})
    try:
        return _validate(content_type, raw)
    except ValidationError as exc:
        # Stored documents predate the typed payloads: drop what no longer fits.
        for error in exc.errors():
            if len(error["loc"]) > 1:
                raw.pop(error["loc"][1], None)
        return _validate(content_type, raw)


def parse_payload(content_type: ContentType, data: Optional[Mapping[str, Any]]) -> ContentPayload:
    """
    Validates a payload sent by a client. Keys that do not belong to the content
    type are rejected with a 400 instead of being stored.
    """
    raw = dict(data or {})
    raw.pop("kind", None)
    unknown = sorted(set(raw) - _writable_keys(content_type))
    if unknown:
        raise BadRequestError(
            f"Unknown fields for {ContentType(content_type).value}: {', '.join(unknown)}"
        )
    try:
        return _validate(content_type, raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"][1:]) or "extraFields"
        raise BadRequestError(f"Invalid {location}: {first['msg']}")


def dump_payload(payload: ContentPayload) -> Dict[str, Any]:
    """Storage form of a payload: camelCase keys, JSON-compatible values."""
    return payload.model_dump(mode="json", by_alias=True, exclude={"kind"})


def merge_payload(content_type: ContentType, stored: Mapping[str, Any], changes: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Shallow merge of client changes into a stored payload. Typed fields are
    revalidated; stored keys the payload does not model (legacy title/image
    keys included) are kept as they are.
    """
    current = {**stored, **dump_payload(load_payload(content_type, stored))}
    update = parse_payload(content_type, changes)
    touched = update.model_fields_set - {"kind"}
    current.update(update.model_dump(mode="json", by_alias=True, include=touched))
    return current
