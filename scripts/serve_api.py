"""Serve the streaming search endpoint with uvicorn."""
from __future__ import annotations

import argparse

import uvicorn

from lodging_search.api.app import create_app
from lodging_search.config.settings import Settings
from lodging_search.core.logging import configure_logging


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the accommodation search API")
    parser.add_argument("--host", default=None, help="Bind address (defaults to LODGING_API_HOST)")
    parser.add_argument("--port", type=int, default=None, help="Port (defaults to LODGING_API_PORT)")
    args = parser.parse_args()

    settings = Settings()
    configure_logging(settings.log_level, settings.log_dir, filename="api.log")
    app = create_app(settings)
    uvicorn.run(
        app,
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
