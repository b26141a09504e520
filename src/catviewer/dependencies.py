"""
Dependency Injection for the viewer session

The lifespan context manager builds the S3 client and the ViewerSession once at
startup and stores them on ``app.state``; route handlers receive them through
these dependencies. Nothing is kept in module globals.
"""

from fastapi import HTTPException, Request

from catviewer.session import ViewerSession


def get_session(request: Request) -> ViewerSession:
    """Dependency injection function for the ViewerSession.

    Example:
        @router.get("/photos/page")
        async def page(session: ViewerSession = Depends(get_session)):
            return await session.get_page(30, 0)
    """
    session: ViewerSession | None = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(status_code=503, detail="Viewer session not initialized")
    return session

