"""Entry point for the Bucketwise API server."""

import logging

import structlog

from bucketwise.config import settings


def run_server(host: str | None = None, port: int | None = None, *, reload: bool = False) -> None:
    """Run the API server with uvicorn.

    Args:
        host: Host to bind to (defaults to settings.server_host)
        port: Port to listen on (defaults to settings.server_port)
        reload: Restart on source changes (development only)
    """
    import uvicorn

    log = structlog.get_logger()
    logging.basicConfig(level=settings.log_level, format="%(message)s")

    host = host or settings.server_host
    port = port or settings.server_port

    log.info(
        "Starting Bucketwise Server",
        environment=settings.environment,
        provider=settings.ai_provider,
        host=host,
        port=port,
        auth="disabled" if settings.disable_auth else "enabled",
    )

    uvicorn.run(
        "bucketwise.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="warning",  # Suppress verbose uvicorn logs
        access_log=False,
    )


def create_app():  # noqa: ANN201 - uvicorn factory
    from bucketwise.api.app import create_api_app

    return create_api_app()


def main() -> None:
    """Main entry point."""
    run_server()


if __name__ == "__main__":
    main()
