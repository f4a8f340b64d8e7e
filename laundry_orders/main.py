import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from laundry_orders.config import settings
from laundry_orders.errors import OrderError
from laundry_orders.lifecycle import OrderLifecycle
from laundry_orders.metrics import get_metrics_bytes, get_metrics_content_type
from laundry_orders.redis_client import close_redis
from laundry_orders.repository import InMemoryRepository, OrderRepository
from laundry_orders.routes import orders, reports, users
from laundry_orders.seed import seed_sample_businesses

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    "validation_error": 400,
    "forbidden": 403,
    "not_found": 404,
    "conflict": 409,
    "illegal_transition": 422,
    "persistence_error": 503,
}


async def _open_repository() -> OrderRepository:
    if settings.storage_backend == "memory":
        logger.info("Using in-memory order store")
        return InMemoryRepository()

    from laundry_orders.db import PostgresRepository, get_pool, init_schema

    pool = await get_pool()
    await init_schema(pool)
    logger.info("Schema ready. Backend=Postgres.")
    return PostgresRepository(pool)


@asynccontextmanager
async def lifespan(app: FastAPI):
    repo = await _open_repository()
    if settings.seed_sample_businesses:
        await seed_sample_businesses(repo)
    app.state.lifecycle = OrderLifecycle(repo)
    yield
    await close_redis()
    if settings.storage_backend == "postgres":
        from laundry_orders.db import close_pool

        await close_pool()


app = FastAPI(title="Laundry Orders", lifespan=lifespan)
app.include_router(orders.router)
app.include_router(users.router)
app.include_router(reports.router)


@app.exception_handler(OrderError)
async def order_error_handler(request: Request, exc: OrderError) -> JSONResponse:
    return JSONResponse(
        status_code=ERROR_STATUS_CODES.get(exc.code, 500),
        content={"error": exc.code, "message": exc.message, "details": exc.details},
    )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus scrape endpoint: orders created, transitions, conflicts, ratings."""
    return Response(
        content=get_metrics_bytes(),
        media_type=get_metrics_content_type(),
    )


def run() -> None:
    import uvicorn

    uvicorn.run("laundry_orders.main:app", host="0.0.0.0", port=8000)
