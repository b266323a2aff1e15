import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI

from httpguard.cache import Cache, Queue, close_redis_clients, create_cache, create_queue
from httpguard.config import (
    get_cors_config,
    get_limiter_options,
    get_session_options,
    get_upload_settings,
    secure_cookies,
)
from httpguard.csrf import CSRFOptions
from httpguard.uploader import UploaderOptions, drain_delete_queue

from .middleware import setup_middleware
from .routers import session_router, uploads_router

logger = logging.getLogger('httpguard.service')

DELETE_QUEUE_NAME = "uploads:delete"


async def periodic_upload_cleanup(queue: Queue, interval_seconds: int = 300):
    """Periodically retry upload deletions that failed during a request"""
    while True:
        try:
            pending = await queue.length()
            if pending:
                removed = await drain_delete_queue(queue)
                logger.info(f"Upload cleanup completed: removed {removed} of {pending} parked files")
        except Exception as e:
            logger.error(f"Error during upload cleanup: {e}", exc_info=True)

        await asyncio.sleep(interval_seconds)


def create_app(cache: Optional[Cache] = None, queue: Optional[Queue] = None) -> FastAPI:
    """
    Build the demo service.

    Args:
        cache: Backend for sessions and rate limiting, defaults to create_cache()
        queue: Deferred upload deletion queue, defaults to create_queue()
    """
    cache = cache or create_cache(prefix=os.getenv("CACHE_PREFIX", ""))
    queue = queue or create_queue(DELETE_QUEUE_NAME)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        cleanup_task = asyncio.create_task(periodic_upload_cleanup(queue))
        yield

        cleanup_task.cancel()
        try:
            await cleanup_task
        except asyncio.CancelledError:
            logger.info("Upload cleanup task cancelled during shutdown")
        await close_redis_clients()

    app = FastAPI(lifespan=lifespan)

    upload_settings = get_upload_settings()
    app.state.upload_settings = upload_settings
    app.state.uploader_options = UploaderOptions(queue=queue, prefix=upload_settings.url_prefix)

    origins, methods, headers = get_cors_config()
    setup_middleware(
        app,
        cache=cache,
        session_options=get_session_options(),
        limiter_options=get_limiter_options(),
        csrf_options=CSRFOptions(secure=secure_cookies()),
        cors_allowed_origins=origins,
        cors_allowed_methods=methods,
        cors_allowed_headers=headers,
    )

    app.include_router(session_router)
    app.include_router(uploads_router)
    return app
