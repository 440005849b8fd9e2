"""
mNews API - main entry point.

Runs the API with uvicorn on the configured host and port:

    mnews
    uvicorn mnews.api.app:app --reload
"""

from __future__ import annotations

import uvicorn

from mnews.config import get_settings


def main():
    """Main entry point."""
    settings = get_settings()
    uvicorn.run(
        "mnews.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug and not settings.is_production,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
