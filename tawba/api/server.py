"""
FastAPI server for the tracker API. Run with run_api_server(app).
Central endpoint: GET /api/health. Feature routes are mounted from
tawba.<package>.api (get_router(tawba_app)) under /api/<package>/.
Docs when enabled: http://<host>:<port>/docs
"""
import importlib
import logging
import pkgutil
from typing import Any, Dict

from fastapi import FastAPI

from tawba.tracker.api import tracker_error_handler
from tawba.tracker.errors import TrackerError

logger = logging.getLogger(__name__)


def create_app(tawba_app: Any) -> FastAPI:
    """Create FastAPI app with routes that use the given TawbaApp instance."""
    app = FastAPI(title="Tawba API", description="Qada prayer tracking, projections and prayer times")
    app.add_exception_handler(TrackerError, tracker_error_handler)

    @app.get("/api/health")
    def health() -> Dict[str, Any]:
        """Liveness plus whether tracking has started."""
        settings = tawba_app.tracker.get_settings()
        return {
            "status": "ok",
            "onboarded": settings.start_date is not None,
            "prayer_times": tawba_app.prayer_backend is not None,
        }

    # Mount routers from tawba.<name>.api (get_router(tawba_app))
    package = importlib.import_module("tawba")
    for _mod, name, is_pkg in pkgutil.iter_modules(package.__path__):
        if not is_pkg:
            continue
        try:
            api_module = importlib.import_module(f"tawba.{name}.api")
        except ModuleNotFoundError as e:
            if e.name != f"tawba.{name}.api":
                raise
            continue
        if not hasattr(api_module, "get_router") or not callable(api_module.get_router):
            continue
        router = api_module.get_router(tawba_app)
        if router is not None:
            app.include_router(router, prefix=f"/api/{name}")
            logger.debug(f"Mounted API router for {name}")

    return app


def run_api_server(tawba_app: Any) -> None:
    """
    Serve the API in the foreground if api.enabled is true.
    Reads api.host (default 127.0.0.1) and api.port (default 8765) from config.
    """
    api_config = tawba_app.config.section("api")
    if not api_config.get("enabled", True):
        logger.info("API server not started: set api.enabled to true in your config file to enable.")
        return
    host = api_config.get("host", "127.0.0.1")
    port = int(api_config.get("port", 8765))
    fastapi_app = create_app(tawba_app)

    import uvicorn
    logger.info(f"API server listening at http://{host}:{port} (docs at /docs)")
    uvicorn.run(fastapi_app, host=host, port=port, log_config=None)
