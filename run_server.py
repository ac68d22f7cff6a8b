"""Stock news search service entry point.

Usage:
    python run_server.py

Loads config.yaml, builds the FastAPI app (database, cache tier, providers,
pipeline) and serves it with uvicorn until interrupted.
"""

import sys

from dotenv import load_dotenv

load_dotenv()  # must precede stocknews imports so env vars are available at module load

import uvicorn  # noqa: E402

from stocknews.api.server import create_app  # noqa: E402
from stocknews.core.config import Settings, load_config  # noqa: E402
from stocknews.core.errors import ConfigurationError  # noqa: E402
from stocknews.core.logger import logger  # noqa: E402


def main() -> int:
    """Run the server. Returns 0 on clean shutdown, 1 on startup failure."""
    try:
        settings = Settings.from_config(load_config())
    except (FileNotFoundError, ValueError, ConfigurationError) as exc:
        logger.error(f"run_server: failed to load config: {exc}")
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    app = create_app(settings)
    logger.info(f"run_server: listening on http://{settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
