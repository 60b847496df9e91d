"""Entrypoint for running the read-retrieve-read chat API with uvicorn."""

from __future__ import annotations

import logging
import os

import uvicorn


def main() -> None:
    """Configure logging and launch the FastAPI application via uvicorn."""

    log_level = os.getenv("API_LOG_LEVEL", "info")
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    uvicorn.run(
        "src.api.app:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8080")),
        reload=os.getenv("API_RELOAD", "false").lower() == "true",
        log_level=log_level,
    )


if __name__ == "__main__":
    main()
