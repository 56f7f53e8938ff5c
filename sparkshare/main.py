import sparkshare.db.base  # noqa: F401
import sparkshare.models  # noqa: F401

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi_mcp import FastApiMCP

from sparkshare.core.config import settings
from sparkshare.api.routes.health import router as health_router
from sparkshare.api.routes.me import router as me_router
from sparkshare.api.routes.friends import router as friends_router
from sparkshare.api.routes.shared_items import router as shared_items_router
from sparkshare.api.routes.sparks import router as sparks_router
from sparkshare.services.share_registry import ShareableItemRegistry, load_spark_modules


logger = logging.getLogger(__name__)
app = FastAPI(title="Sparkshare API", version="0.1.0")

local_cors_origin_regex = (
    r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"
    if settings.env in {"local", "test"}
    else None
)

# One registry per process; sparks upsert themselves into it.
share_registry = ShareableItemRegistry()
load_spark_modules(share_registry, settings.spark_module_list())
app.state.share_registry = share_registry


@app.exception_handler(Exception)
async def debug_exception_handler(request: Request, exc: Exception):
    if settings.env in {"local", "test"}:
        return PlainTextResponse(
            "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            status_code=500,
        )
    logger.exception("Unhandled exception for %s %s", request.method, request.url.path)
    return PlainTextResponse("Internal Server Error", status_code=500)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list(),
    allow_origin_regex=local_cors_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(me_router)
app.include_router(friends_router)
app.include_router(shared_items_router)
app.include_router(sparks_router)

mcp = FastApiMCP(app)
mcp.mount_http()
