"""School directory routes."""

from fastapi import APIRouter, Query

from core.dependencies import SchoolManagerDep
from schemas.school import DirectoryEntry, DirectorySearchResponse
from utils.school_manager import DIRECTORY_SEARCH_LIMIT

router = APIRouter(prefix="/api/schools", tags=["Schools"])


@router.get("/directory", response_model=DirectorySearchResponse, summary="Search school names")
def search_directory(
    q: str = "",
    limit: int = Query(default=DIRECTORY_SEARCH_LIMIT, ge=1, le=DIRECTORY_SEARCH_LIMIT),
    schools: SchoolManagerDep = None,
) -> DirectorySearchResponse:
    """Case-insensitive search over every school name seen so far.

    Open to signed-out visitors: the mentor signup form offers these names.
    """
    results = schools.search_directory(q, limit=limit)
    return DirectorySearchResponse(
        results=[DirectoryEntry(id=m.id, school_name=m.school_name) for m in results]
    )
