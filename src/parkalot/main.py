"""Main application entry point."""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .aggregation import AggregationQuery
from .api.router import init_router, router
from .config import AppConfig, get_config_path, load_config
from .errors import ConfigurationMissing
from .inference.factory import InferenceAdapterFactory
from .inference.locator import ImageLocator
from .scheduler import UpdateLoop, run_periodic
from .store.location_store import LocationStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _load_app_config() -> AppConfig:
    config_path = get_config_path()
    if not config_path.exists():
        logger.error(f"Configuration file not found: {config_path}")
        logger.error("Please create config/config.yaml from config/config.example.yaml")
        sys.exit(1)

    config = load_config(config_path)
    logger.info(f"Loaded configuration from {config_path}")
    return config


def build_update_loop(config: AppConfig, store: LocationStore) -> UpdateLoop:
    """Wire the locator, inference backend and store into an UpdateLoop."""
    locator = ImageLocator(
        images_dir=config.images.images_dir,
        test_images_dir=config.images.test_images_dir,
        use_test_images=config.images.use_test_images,
    )
    adapter = InferenceAdapterFactory.create(config.inference)

    return UpdateLoop(
        store=store,
        locator=locator,
        adapter=adapter,
        confidence_threshold=config.inference.confidence_threshold,
        free_classes=config.inference.free_classes,
        inference_timeout=config.inference.timeout_seconds,
    )


async def _cancel(task: asyncio.Task | None) -> None:
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting Parkalot...")

    config: AppConfig = app.state.config

    try:
        store = LocationStore(
            uri=config.store.uri,
            database=config.store.database,
            collection=config.store.collection,
            timeout_seconds=config.store.timeout_seconds,
        )
    except ConfigurationMissing as e:
        logger.error(str(e))
        sys.exit(1)

    update_loop = build_update_loop(config, store)
    aggregation = AggregationQuery(store)

    refresh_task: asyncio.Task | None = None
    heartbeat_task: asyncio.Task | None = None

    if config.schedule.refresh_cron:
        refresh_task = asyncio.create_task(
            run_periodic("refresh", config.schedule.refresh_cron, update_loop.run_cycle)
        )
    else:
        logger.info("Refresh task disabled")

    if config.schedule.heartbeat_cron:
        heartbeat_task = asyncio.create_task(
            run_periodic("heartbeat", config.schedule.heartbeat_cron, update_loop.run_heartbeat)
        )
    else:
        logger.info("Heartbeat task disabled")

    init_router(
        store,
        update_loop,
        aggregation,
        refresh_running=lambda: refresh_task is not None and not refresh_task.done(),
    )

    logger.info(f"Parkalot ready on http://{config.api.host}:{config.api.port}")

    yield  # Application runs here

    # Shutdown
    logger.info("Shutting down...")

    await _cancel(refresh_task)
    await _cancel(heartbeat_task)
    await store.close()

    logger.info("Shutdown complete")


def create_app(config: AppConfig) -> FastAPI:
    """Create the FastAPI application for a configuration."""
    app = FastAPI(
        title="Parkalot",
        description="Parking lot availability from periodic image inference",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router, prefix="/api/v1")
    return app


def main():
    """Run the application."""
    config = _load_app_config()
    uvicorn.run(
        create_app(config),
        host=config.api.host,
        port=config.api.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
