"""
ESAP Platform - Main entry point.

Runs the API with uvicorn, configured from settings. Equivalent to:

    uvicorn esap.api.app:app --reload
"""

from __future__ import annotations

import uvicorn

from esap.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "esap.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
