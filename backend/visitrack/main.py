import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from . import __version__
from .api import active_users, auth, visitors
from .config import settings
from .database import create_tables
from .errors import register_exception_handlers
from .middleware import HTTPLogMiddleware
from .services.active_users import ActiveUserStore

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    create_tables()
    logger.info("Database ready")
    yield


# Initialize FastAPI app
app = FastAPI(
    title="Visitrack",
    description="Visitor tracking and geography API for the admin dashboard",
    version=__version__,
    lifespan=lifespan
)

# Setup rate limiter
app.state.limiter = auth.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_exception_handlers(app)

app.state.active_users = ActiveUserStore(ttl=timedelta(minutes=settings.ACTIVE_USER_TTL_MINUTES))

# CORS middleware
cors_origins = settings.cors_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.REQUEST_DEBUG:
    logging.getLogger("visitrack.http").setLevel(logging.DEBUG)
    app.add_middleware(HTTPLogMiddleware)

# Include routers
app.include_router(auth.router, prefix="/api")
app.include_router(visitors.router, prefix="/api")
app.include_router(active_users.router, prefix="/api")


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "Visitrack"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
