import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from catviewer.api.favourites import router as favourites_router
from catviewer.api.photos import router as photos_router
from catviewer.api.session import router as session_router
from catviewer.exceptions import CredentialFailure, ListingFailure
from catviewer.logging_config import configure_logging
from catviewer.s3_service import AsyncS3Client
from catviewer.session import ViewerSession
from catviewer.settings import get_viewer_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle: startup and shutdown.

    Builds the S3 client and the viewer session on startup (unless a test
    already put them on app.state) and closes the client on shutdown.
    """
    settings = get_viewer_settings()
    configure_logging(level=settings.log_level, use_colors=settings.log_colors)

    logger.info("Starting up application...")
    if getattr(app.state, "session", None) is None:
        try:
            s3_client = AsyncS3Client()
            app.state.s3_client = s3_client
            app.state.session = ViewerSession(s3_client, settings)
            logger.info("Viewer session initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize viewer session: {e}")
            raise

    yield

    logger.info("Shutting down application...")
    s3_client = getattr(app.state, "s3_client", None)
    if s3_client is not None:
        await s3_client.close()


app = FastAPI(redoc_url=None, redirect_slashes=False, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:4200", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(photos_router)
app.include_router(favourites_router)
app.include_router(session_router)


@app.exception_handler(CredentialFailure)
async def credential_failure_handler(request: Request, exc: CredentialFailure) -> JSONResponse:
    logger.warning(f"Credentials rejected on {request.url.path}: {exc}")
    session: ViewerSession | None = getattr(request.app.state, "session", None)
    if session is not None:
        session.credentials_rejected(exc)
    return JSONResponse(status_code=401, content={"detail": "Credentials rejected, sign in again"})


@app.exception_handler(ListingFailure)
async def listing_failure_handler(request: Request, exc: ListingFailure) -> JSONResponse:
    logger.error(f"Listing failed on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": "Failed to load photos"})


@app.get("/health")
def health(request: Request) -> dict:
    session: ViewerSession | None = getattr(request.app.state, "session", None)
    return {"status": "ok" if session is not None else "starting"}
