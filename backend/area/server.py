"""
FastAPI application entry point for the Area workflow service.

Startup: load config, configure logging, open the store and the shared HTTP
client, build the dispatch registry, start the polling workers.
Shutdown: stop the workers, cancel pending webhook dispatches, close the client.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

if TYPE_CHECKING:
    from .config import Config
    from .core.store import Store

log = logging.getLogger("area.server")


def _build_workers(config: "Config", store: "Store", dispatcher, client: httpx.AsyncClient):
    from .integrations import build_poll_sources
    from .service.polling import CursorPollingWorker, WorkerManager
    from .service.scheduler import TimerWorker

    manager = WorkerManager()
    manager.register(TimerWorker(store, dispatcher, config.worker_interval("timer", 60)))
    for source in build_poll_sources(config, client):
        manager.register(CursorPollingWorker(
            source, store, dispatcher, config.worker_interval(source.name, 60),
        ))
    return manager


def create_app(
    config: "Config | None" = None,
    store: "Store | None" = None,
    client: httpx.AsyncClient | None = None,
    start_workers: bool = True,
) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # 1. Config  (get_config() keeps the singleton)
        from .config import get_config
        _config = config or get_config()

        # 2. Logging
        from .logging_config import configure_logging
        log_file = configure_logging(_config)
        logger = logging.getLogger("area.server")

        # 3. Store
        from .core.store import FileStore
        _store = store or FileStore(_config.data_dir)

        # 4. Shared HTTP client for every provider call
        _client = client or httpx.AsyncClient(timeout=_config.http_timeout)

        # 5. Registry, dispatcher, lifecycle manager
        from .core.workflow import WorkflowManager
        from .integrations import build_registry
        from .service.triggers import TriggerDispatcher
        registry = build_registry(_config, _store, _client)
        dispatcher = TriggerDispatcher(registry, _store)
        manager = WorkflowManager(registry, _store)
        logger.info("Registry built  %r", registry)

        # 6. Workers
        workers = _build_workers(_config, _store, dispatcher, _client)
        if start_workers and _config.workers_enabled:
            workers.start_all()
        else:
            logger.info("Workers disabled")

        app.state.config = _config
        app.state.store = _store
        app.state.client = _client
        app.state.registry = registry
        app.state.dispatcher = dispatcher
        app.state.manager = manager
        app.state.workers = workers

        logger.info("Started  port=%s workflow_url=%s log=%s",
                    _config.get("server.port"), _config.workflow_url, log_file.name)

        yield

        # Shutdown
        logger.info("Shutting down...")
        await workers.stop_all()
        await dispatcher.cancel_pending()
        if client is None:
            await _client.aclose()
        logger.info("Shutdown complete")

    app = FastAPI(title="Area Workflow", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:8081", "http://127.0.0.1:8081"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": "workflow"}

    from .api.routes.connections import router as connections_router
    from .api.routes.logs import router as logs_router
    from .api.routes.services import about_router
    from .api.routes.services import router as services_router
    from .api.routes.webhooks import router as webhooks_router
    from .api.routes.workflows import router as workflows_router

    app.include_router(services_router, prefix="/api")
    app.include_router(workflows_router, prefix="/api")
    app.include_router(connections_router, prefix="/api")
    app.include_router(logs_router, prefix="/api")
    app.include_router(webhooks_router)
    app.include_router(about_router)

    return app


app = create_app()


if __name__ == "__main__":
    import os

    import uvicorn

    from .config import get_config
    uvicorn.run(
        "area.server:app",
        host=str(get_config().get("server.host", "0.0.0.0")),
        port=int(get_config().get("server.port", 8080)),
        reload=os.getenv("DEV_MODE", "").lower() in ("1", "true"),
    )
