# helpers/pagination.py  -- offset pagination shared by every listing endpoint
import math

from fastapi import Query
from pydantic import BaseModel

from devnet.core.config import settings


class PageMeta(BaseModel):
    total: int
    page: int
    pages: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "PageMeta":
        return cls(total=total, page=page, pages=math.ceil(total / limit) if limit else 0)


class PageParams:
    """Query-string `page`/`limit` dependency (1-based pages)."""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    ):
        self.page = page
        self.limit = limit

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def meta(self, total: int) -> PageMeta:
        return PageMeta.build(total, self.page, self.limit)
