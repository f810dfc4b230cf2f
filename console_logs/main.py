"""FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from console_logs.api.tools import router as tools_router
from console_logs.core.config import configure_logging
from console_logs.core.database import close_db, create_tables, get_session
from console_logs.services import RetentionService, SearchIndex


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    create_tables()
    RetentionService.auto_prune()
    yield
    close_db()


app = FastAPI(
    title="Console Logs API",
    description="Searchable console logs of wrapped processes, exposed as tools",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(tools_router, prefix="/v1", tags=["tools"])


@app.get("/health")
def health_check():
    """Health check endpoint. Reports degraded when text search is unavailable."""
    with get_session() as session:
        search_index = SearchIndex.is_available(session)

    return {
        "status": "healthy" if search_index else "degraded",
        "search_index": search_index,
    }
