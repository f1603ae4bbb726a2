from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reunite.config import get_settings
from reunite.db.db import init_db
from reunite.errors import ReuniteError
from reunite.routers import admin, found_items, lost_items, matches
from reunite.utils.logger import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    init_db()
    logger.info("service_started", strategy=settings.match_strategy, min_score=settings.min_score)
    yield


app = FastAPI(lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ReuniteError)
async def reunite_error_handler(request: Request, exc: ReuniteError) -> JSONResponse:
    logger.error(
        "request_failed",
        error_type=type(exc).__name__,
        message=exc.message,
        details=exc.details,
        path=str(request.url),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": type(exc).__name__,
            "message": exc.message,
            "details": exc.details,
        },
    )


# Register routers
app.include_router(lost_items.router, prefix="/lost-items", tags=["Lost Items"])
app.include_router(found_items.router, prefix="/found-items", tags=["Found Items"])
app.include_router(matches.router, prefix="/matches", tags=["Matches"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])


@app.get("/")
def root():
    return {"status": "ok"}
