from fastapi import APIRouter, Depends, HTTPException, Query

from catviewer.dependencies import get_session
from catviewer.exceptions import ObjectNotFound
from catviewer.schemas.photo import Photo
from catviewer.session import ViewerSession

router = APIRouter(prefix="/favourites", tags=["favourites"])


@router.get("", response_model=list[Photo])
async def list_favourites(session: ViewerSession = Depends(get_session)) -> list[Photo]:
    return await session.favourites.get_favourites()


@router.get("/status")
async def favourite_status(key: str = Query(..., min_length=1), session: ViewerSession = Depends(get_session)) -> dict:
    return {"key": key, "favourite": await session.favourites.is_favourite(key)}


@router.post("", status_code=201)
async def add_favourite(key: str = Query(..., min_length=1), session: ViewerSession = Depends(get_session)) -> dict:
    """Copy a photo into favourites. Removing favourites is not supported."""
    try:
        favourite = await session.favourites.toggle_favourite(key)
    except ObjectNotFound as e:
        raise HTTPException(status_code=404, detail="Photo not found") from e
    return {"key": key, "favourite": favourite}
