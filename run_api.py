#!/usr/bin/env python3
"""
Script to run the Book Store API server.
"""

import uvicorn

from utilities.config import config


def main():
    """Run the API server."""
    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.is_development(),
        log_level=config.log_level.lower(),
        access_log=False
    )


if __name__ == "__main__":
    main()
