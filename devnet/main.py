"""
FastAPI app entrypoint.
Configures logging, registers routers and error handlers, serves uploaded files
and creates DB indexes at startup.
"""

import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pymongo.errors import OperationFailure, PyMongoError

from devnet.api.endpoints import contents as contents_router
from devnet.api.endpoints import cv as cv_router
from devnet.api.endpoints import interactions as interactions_router
from devnet.api.endpoints import search as search_router
from devnet.api.endpoints import uploads as uploads_router
from devnet.api.endpoints import users as users_router
from devnet.core.config import settings
from devnet.core.errors import register_exception_handlers
from devnet.core.middleware import JSONBodyLimitMiddleware
from devnet.db.session import close_client, engine, ensure_indexes
from devnet.domains.uploads.storage import URL_PREFIX, UploadStorage

# --- Logging Configuration ---
LOGS_DIR = Path(settings.LOG_DIR)
LOGS_DIR.mkdir(parents=True, exist_ok=True)
LOG_FILE = LOGS_DIR / "app.log"
for handler in logging.root.handlers[:]:
    logging.root.removeHandler(handler)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.FileHandler(LOG_FILE),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME)
app.state.storage = UploadStorage.from_settings(settings)

# Reject oversized JSON bodies, declared or streamed
app.add_middleware(JSONBodyLimitMiddleware, max_bytes=settings.MAX_JSON_BODY_BYTES)

# CORS Middleware (outermost, so 413s carry CORS headers too)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


# Routers (interactions before contents: its static paths must win over /{content_id})
app.include_router(users_router.router)
app.include_router(interactions_router.router)
app.include_router(contents_router.router)
app.include_router(search_router.router)
app.include_router(uploads_router.router)
app.include_router(cv_router.router)

app.mount(URL_PREFIX, StaticFiles(directory=settings.UPLOAD_FOLDER, check_dir=False), name="uploads")


@app.on_event("startup")
async def startup_event():
    logger.info("Application startup...")
    app.state.storage.ensure()

    # Create DB Indexes
    try:
        await ensure_indexes(engine)
    except OperationFailure as e:
        logger.error("Index creation failed due to a database operation error: %s", e)
    except PyMongoError as e:
        logger.warning("A non-critical error occurred during index creation: %s", e)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutdown...")
    close_client()


@app.get("/")
async def health():
    return {"status": "ok"}
