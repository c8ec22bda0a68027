"""
Process entrypoint.

uvicorn owns signal handling: SIGINT/SIGTERM stop accepting connections,
in-flight requests get SHUTDOWN_TIMEOUT_SECONDS to finish, then the app
lifespan closes the record store.
"""

from __future__ import annotations

import logging

import uvicorn

from app.core.settings import Settings
from observability import build_log_context, log_event


def main() -> None:
    settings = Settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from api_server import create_app

    app = create_app(settings=settings)
    log_event(
        "api_server_started",
        ctx=build_log_context(tool="main"),
        data={"host": settings.API_HOST, "port": settings.API_PORT, "version": settings.VERSION},
    )
    uvicorn.run(
        app,
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
        timeout_graceful_shutdown=int(settings.SHUTDOWN_TIMEOUT_SECONDS),
    )


if __name__ == "__main__":
    main()
