"""Serve the backend: ``python -m eventhub [--host HOST] [--port PORT]``."""
import argparse
import logging
from typing import Sequence

import uvicorn

from eventhub.config import settings

logger = logging.getLogger("eventhub")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="EventHub backend")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    parser.add_argument("--port", type=int, default=8000, help="Port for HTTP and websocket traffic")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    args = _parse_args(argv)

    from eventhub.main import app

    logger.info("Starting backend on http://%s:%s", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
