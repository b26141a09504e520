from fastapi import APIRouter, Depends

from catviewer.dependencies import get_session
from catviewer.session import ViewerSession

router = APIRouter(prefix="/session", tags=["session"])


# POST /session/logout - Drop every cache tied to the current credentials
@router.post("/logout", status_code=204)
async def logout(session: ViewerSession = Depends(get_session)) -> None:
    session.logout()
