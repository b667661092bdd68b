# app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from app.core.config import settings
from app.core.middleware import configure_logging, register_middleware
from app.db.session import create_tables, get_async_engine
from app.errors import register_all_errors
from app.api.routers import conversations, messages, users

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.PROJECT_NAME}")
    await create_tables()
    yield
    await get_async_engine().dispose()
    logger.info("Database engine disposed, shutting down")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Group and direct conversations with admin rights, soft-deletable messages and read receipts.",
    version="0.1.0",
    lifespan=lifespan,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
)

# /metrics for Prometheus, the health check stays out of the histograms
Instrumentator(excluded_handlers=["/metrics", "^/$"]).instrument(app).expose(app, include_in_schema=False)

register_middleware(app)
register_all_errors(app)

for router, prefix, tag in (
    (users.router, "/users", "Users"),
    (conversations.router, "/conversations", "Conversations"),
    (messages.router, "/messages", "Messages"),
):
    app.include_router(router, prefix=f"{settings.API_V1_STR}{prefix}", tags=[tag])


@app.get("/", tags=["Health Check"])
async def root():
    """Health check endpoint."""
    return {"message": f"{settings.PROJECT_NAME} is running!"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=10000, reload=True)
