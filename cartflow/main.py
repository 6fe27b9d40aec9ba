# cartflow/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
import uvicorn

from cartflow.data.database import Base, engine
from cartflow.api.routers import addresses, carts, checkout, health, orders, vouchers
from cartflow.utils.logging import get_logger

# models have to be imported before create_all
import cartflow.data.models  # noqa: F401

logger = get_logger(__name__)


def init_db() -> None:
    logger.info(f"Creating tables: {list(Base.metadata.tables.keys())}")
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app(with_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="Cart & Checkout Service",
        version="1.0.0",
        lifespan=lifespan if with_lifespan else None,
    )

    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(addresses.router)
    app.include_router(vouchers.router)
    app.include_router(checkout.router)
    app.include_router(orders.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
