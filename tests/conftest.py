"""
Shared fixtures. The environment is seeded before anything from devnet is
imported, since settings are read at import time.
"""

import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="devnet-tests-")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("MONGO_DB", "devnet_test")
os.environ.setdefault("MONGO_TIMEOUT_MS", "200")
os.environ.setdefault("UPLOAD_FOLDER", os.path.join(_TMP, "uploads"))
os.environ.setdefault("LOG_DIR", os.path.join(_TMP, "logs"))

import re  # noqa: E402
from typing import Any, Dict, List, Optional, Tuple  # noqa: E402

import pytest  # noqa: E402
from bson import ObjectId  # noqa: E402

from devnet.domains.contents.models import ContentModel, ContentType  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


# ------------------------------
# In-memory engine
# ------------------------------
def _lookup(doc: Dict[str, Any], path: str) -> Any:
    value: Any = doc
    for part in path.split("."):
        if isinstance(value, list):
            return [item.get(part) for item in value if isinstance(item, dict)]
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _equals(value: Any, expected: Any) -> bool:
    if isinstance(value, list) and not isinstance(expected, list):
        return expected in value
    return value == expected


def _matches_condition(value: Any, condition: Any) -> bool:
    if not (isinstance(condition, dict) and condition and all(key.startswith("$") for key in condition)):
        return _equals(value, condition)
    for op, arg in condition.items():
        if op == "$eq":
            ok = _equals(value, arg)
        elif op == "$ne":
            ok = not _equals(value, arg)
        elif op == "$in":
            ok = any(_equals(value, item) for item in arg)
        elif op == "$regex":
            ok = isinstance(value, str) and re.search(arg, value, re.IGNORECASE) is not None
        elif op == "$options":
            ok = True
        else:
            raise NotImplementedError(f"Unsupported query operator {op}")
        if not ok:
            return False
    return True


def matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    """Evaluates the subset of the Mongo query language the services use."""
    for key, condition in query.items():
        if key == "$and":
            ok = all(matches(doc, sub) for sub in condition)
        elif key == "$or":
            ok = any(matches(doc, sub) for sub in condition)
        else:
            ok = _matches_condition(_lookup(doc, key), condition)
        if not ok:
            return False
    return True


def _sort_keys(sort: Any) -> List[Tuple[str, int]]:
    if sort is None:
        return []
    if isinstance(sort, dict):
        return list(sort.items())
    keys: List[Tuple[str, int]] = []
    for part in sort:
        keys.extend(_sort_keys(part))
    return keys


class _WriteResult:
    def __init__(self, matched: int):
        self.matched_count = matched
        self.modified_count = matched


class FakeCollection:
    """Just enough of a Motor collection for the raw calls the services make."""

    def __init__(self):
        self.docs: Dict[ObjectId, Dict[str, Any]] = {}
        self.replace_calls = 0
        # documents swapped in right before a replace, to simulate a racing writer
        self.interleaved: List[Dict[str, Any]] = []

    def matching(self, *queries: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [doc for doc in self.docs.values() if all(matches(doc, q) for q in queries)]

    async def replace_one(self, filter: Dict[str, Any], replacement: Dict[str, Any]) -> _WriteResult:
        self.replace_calls += 1
        if self.interleaved:
            racing = self.interleaved.pop(0)
            self.docs[racing["_id"]] = racing

        current = self.docs.get(filter["_id"])
        if current is None or not matches(current, {"revision": filter["revision"]}):
            return _WriteResult(0)
        self.docs[filter["_id"]] = replacement
        return _WriteResult(1)

    async def update_many(self, filter: Dict[str, Any], update: Dict[str, Any]) -> _WriteResult:
        hits = self.matching(filter)
        for doc in hits:
            doc.update(update.get("$set", {}))
        return _WriteResult(len(hits))

    async def find(self, filter: Dict[str, Any], projection: Optional[Dict[str, Any]] = None):
        for doc in self.matching(filter):
            if projection:
                yield {key: doc[key] for key in ("_id", *projection) if key in doc}
            else:
                yield dict(doc)


class FakeEngine:
    """In-memory stand-in for AIOEngine, one FakeCollection per model."""

    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}

    def get_collection(self, model) -> FakeCollection:
        return self.collections.setdefault(model.__collection__, FakeCollection())

    @property
    def collection(self) -> FakeCollection:
        return self.get_collection(ContentModel)

    @property
    def docs(self) -> Dict[ObjectId, Dict[str, Any]]:
        return self.collection.docs

    def add(self, instance):
        self.get_collection(type(instance)).docs[instance.id] = instance.model_dump_doc()
        return instance

    def stored(self, content_id: ObjectId) -> ContentModel:
        return ContentModel.model_validate_doc(self.docs[content_id])

    async def save(self, instance):
        return self.add(instance)

    async def save_all(self, instances):
        return [self.add(instance) for instance in instances]

    async def delete(self, instance) -> None:
        self.get_collection(type(instance)).docs.pop(instance.id, None)

    async def remove(self, model, *queries) -> int:
        collection = self.get_collection(model)
        hits = collection.matching(*queries)
        for doc in hits:
            del collection.docs[doc["_id"]]
        return len(hits)

    async def find(self, model, *queries, sort=None, skip: int = 0, limit: Optional[int] = None):
        docs = self.get_collection(model).matching(*queries)
        for key, direction in reversed(_sort_keys(sort)):
            docs.sort(key=lambda doc: doc.get(key), reverse=direction == -1)
        docs = docs[skip:]
        if limit is not None:
            docs = docs[:limit]
        return [model.model_validate_doc(doc) for doc in docs]

    async def find_one(self, model, *queries, sort=None):
        found = await self.find(model, *queries, sort=sort, limit=1)
        return found[0] if found else None

    async def count(self, model, *queries) -> int:
        return len(self.get_collection(model).matching(*queries))


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


def make_content(content_type: ContentType = ContentType.POST, **kwargs) -> ContentModel:
    kwargs.setdefault("user_id", ObjectId())
    return ContentModel(content_type=content_type, **kwargs)


@pytest.fixture
def question() -> ContentModel:
    return make_content(ContentType.QUESTION, title="How do I reverse a list?")


@pytest.fixture
def content_factory():
    return make_content
