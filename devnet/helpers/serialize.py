# helpers/serialize.py  -- ObjectId parsing and id conversion shared by the API layer
import logging
from typing import Any, Iterable, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from devnet.core.errors import BadRequestError

logger = logging.getLogger(__name__)


class APIModel(BaseModel):
    """
    Base for request/response DTOs: snake_case in Python, camelCase on the wire.
    Both spellings are accepted on input.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def oid_to_str(obj_id):
    # Odmantic model.id is a BSON ObjectId -> convert to str
    return str(obj_id) if obj_id is not None else None


def oids_to_str(obj_ids: Iterable[Any]) -> List[str]:
    return [str(obj_id) for obj_id in obj_ids]


def parse_object_id(value: Optional[str], name: str = "ID") -> ObjectId:
    """
    Converts a client supplied id into an ObjectId, raising a 400 for anything malformed.
    """
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        logger.warning(f"Invalid ObjectId format for {name}: {value!r}")
        raise BadRequestError(f"Invalid {name} format")
