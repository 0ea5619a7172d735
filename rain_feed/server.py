"""
Entry point for running the Rain feed API with uvicorn.
"""

import argparse
from pathlib import Path

import uvicorn

from rain_feed.api import create_app
from rain_feed.config import load_config
from rain_feed.constants import DEFAULT_CONFIG_PATH
from rain_feed.service import RainFeedService
from util.logging_util import setup_logger

logger = setup_logger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Run the Rain feed API server")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to the YAML config")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    config = load_config(args.config)
    service = RainFeedService.from_config(config)
    app = create_app(service)

    logger.info(f"Starting Rain feed API on {args.host}:{args.port} (db={config.database_url})")
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
