"""FastAPI application factory and entry point."""

from __future__ import annotations

import argparse
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from .config import EngineConfig
from .config_loader import load_config
from .engine import MemoryEngine, build_engine
from .generation import GenerationClient
from .logging_config import setup_logging
from .routes import init_memory_routes


def create_app(
    config: EngineConfig | None = None,
    engine: MemoryEngine | None = None,
    client: GenerationClient | None = None,
) -> FastAPI:
    """
    Build the web application.

    Routes are registered once here. The engine is created (or the given one
    adopted) on startup, held on ``app.state.engine`` where the route
    handlers look it up, and closed on shutdown.

    Args:
        config: Engine configuration; defaults when omitted.
        engine: Prebuilt engine, mainly for tests.
        client: Generation client passed to ``build_engine``.
    """
    config = config or EngineConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        running = engine if engine is not None else await build_engine(config, client=client)
        app.state.engine = running
        await running.start()
        logger.info("Companion memory server ready")
        try:
            yield
        finally:
            await running.close()
            app.state.engine = None

    app = FastAPI(title="companion-memory", lifespan=lifespan)
    app.include_router(init_memory_routes(), tags=["memory"])
    return app


def main() -> None:
    import uvicorn

    parser = argparse.ArgumentParser(description="Companion memory server")
    parser.add_argument("--config", default=None, help="Path to YAML config file")
    args = parser.parse_args()

    config = load_config(args.config)
    setup_logging(config.logging)
    logger.info(f"Starting server on {config.server.host}:{config.server.port}")
    uvicorn.run(create_app(config), host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
