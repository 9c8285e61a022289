import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from content_api.cache import cache
from content_api.config import settings
from content_api.database import dispose_engine
from content_api.errors import AuthenticationError, ContentAPIError
from content_api.middleware import TimingMiddleware
from content_api.routers import articles, media, metrics, users

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    if settings.CACHE_BACKEND.lower() == "redis":
        await cache.connect(settings.REDIS_URL)
    else:
        logger.info("Cache backend: %s", settings.CACHE_BACKEND)
    yield
    # Shutdown
    await cache.disconnect()
    await dispose_engine()

app = FastAPI(
    title="Content API",
    description="Users, articles and media, with a cache-aside article read path",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Error mapping
@app.exception_handler(ContentAPIError)
async def content_api_error_handler(request: Request, exc: ContentAPIError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers)

# Routers
app.include_router(articles.router)
app.include_router(users.router)
app.include_router(media.router)
app.include_router(metrics.router)

@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
