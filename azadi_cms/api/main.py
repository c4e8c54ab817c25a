"""
FastAPI app assembly: middleware and router wiring.
Includes the build information endpoint.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Configure logging
LOG_LEVEL_NAME = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", LOG_LEVEL_NAME)


from azadi_cms import __version__
from azadi_cms.api.collections import donations_router
from azadi_cms.api.collections import router as collections_router
from azadi_cms.api.dashboard import router as dashboard_router
from azadi_cms.api.maintenance import router as maintenance_router
from azadi_cms.api.settings import router as settings_router
from azadi_cms.workers.maintenance import drain_maintenance_engine


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    # let a running maintenance pass finish its writes before exit
    await drain_maintenance_engine()


app = FastAPI(
    title="Azadi CMS Service",
    description="Admin API for the organization's content, donations, settings and maintenance automation.",
    version=__version__,
    lifespan=lifespan,
)

# Avoid implicit trailing-slash redirects for predictable URLs
app.router.redirect_slashes = False

origins = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5173",
]
extra_origins = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "").split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins + extra_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/build-info", tags=["support"])
def get_build_info():
    """Return build and deployment information for the running service."""
    build_sha = os.getenv("BUILD_SHA")
    build_timestamp = os.getenv("BUILD_TIMESTAMP")
    image_tag = os.getenv("IMAGE_TAG")

    return {
        "build_sha": build_sha if build_sha else None,
        "build_timestamp": build_timestamp if build_timestamp else None,
        "image_tag": image_tag if image_tag else None,
        "service_name": "azadi-cms",
        "version": os.getenv("VERSION", __version__),
    }


app.include_router(collections_router)
app.include_router(donations_router)
app.include_router(settings_router)
app.include_router(maintenance_router)
app.include_router(dashboard_router)
