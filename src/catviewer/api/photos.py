import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from catviewer.dependencies import get_session
from catviewer.schemas.metadata import PhotoMetadata, TrendSeries
from catviewer.schemas.photo import PhotoPage, RangeResponse, RefreshResult
from catviewer.session import ViewerSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/photos", tags=["photos"])


def _page_size(session: ViewerSession, size: int | None) -> int:
    size = size or session.settings.default_page_size
    if size > session.settings.max_page_size:
        raise HTTPException(status_code=400, detail=f"Page size must be at most {session.settings.max_page_size}")
    return size


# GET /photos - Date range view (defaults to the last 24 hours)
@router.get("", response_model=RangeResponse)
async def get_photos_in_range(
    start: datetime | None = Query(None, description="Range start (UTC if no offset given)"),
    end: datetime | None = Query(None, description="Range end (UTC if no offset given)"),
    session: ViewerSession = Depends(get_session),
) -> RangeResponse:
    try:
        return await session.select_range(start, end)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


# GET /photos/page - Newest-first infinite scroll
@router.get("/page", response_model=PhotoPage)
async def get_photos_page(
    page: int = Query(0, ge=0),
    size: int | None = Query(None, ge=1),
    session: ViewerSession = Depends(get_session),
) -> PhotoPage:
    return await session.get_page(_page_size(session, size), page)


# GET /photos/range/page - Page through the current date range working set
@router.get("/range/page", response_model=PhotoPage)
async def get_range_page(
    page: int = Query(0, ge=0),
    size: int | None = Query(None, ge=1),
    session: ViewerSession = Depends(get_session),
) -> PhotoPage:
    if session.range_window is None:
        raise HTTPException(status_code=409, detail="No date range selected")
    return session.get_range_page(_page_size(session, size), page)


# GET /photos/new - Incremental refresh, never fails on listing errors
@router.get("/new", response_model=RefreshResult)
async def get_new_photos(session: ViewerSession = Depends(get_session)) -> RefreshResult:
    return await session.refresh()


# POST /photos/reset - Refresh from scratch
@router.post("/reset", status_code=204)
async def reset_photos(session: ViewerSession = Depends(get_session)) -> None:
    session.refresh_from_scratch()


@router.get("/metadata", response_model=PhotoMetadata)
async def get_photo_metadata(
    key: str = Query(..., min_length=1),
    session: ViewerSession = Depends(get_session),
) -> PhotoMetadata:
    metadata = await session.metadata.get(key)
    if metadata is None:
        raise HTTPException(status_code=404, detail="Metadata not found")
    return metadata


@router.get("/trends", response_model=TrendSeries)
async def get_trends(session: ViewerSession = Depends(get_session)) -> TrendSeries:
    """Sensor trend series for the photos currently in view."""
    return await session.trends()
