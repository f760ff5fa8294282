# devnet/api/endpoints/search.py
from fastapi import APIRouter, Depends, HTTPException, Query
from odmantic import AIOEngine

from devnet.db.session import get_engine
from devnet.domains.search.services import SearchResults, search

router = APIRouter(prefix="/api/search", tags=["search"])


@router.get("", response_model=SearchResults)
async def search_everything(q: str = Query(""), engine: AIOEngine = Depends(get_engine)):
    """Users and public content matching `q` (case-insensitive substring)."""
    if not q.strip():
        raise HTTPException(status_code=400, detail="Search query is required")
    return await search(engine, q)
