"""Entry point for running the wrapper directly."""

import uvicorn

from wrapper.config import settings


def main():
    """Run the wrapper server."""
    uvicorn.run(
        "wrapper.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
