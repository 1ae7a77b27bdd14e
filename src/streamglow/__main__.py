import argparse
import logging
import sys

import uvicorn

from .api import init_app
from .common.exceptions import ConfigurationError, ValidationError
from .core.config import SystemConfig

logger = logging.getLogger(__name__)


def main():
    """Main entry point with argument parsing"""
    parser = argparse.ArgumentParser(description="Stream light effect orchestrator")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--host", help="API host (overrides config)")
    parser.add_argument("--port", type=int, help="API port (overrides config)")
    parser.add_argument(
        "--mock-devices",
        action="store_true",
        help="Use in-memory devices instead of the strip and panel",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    args = parser.parse_args()

    # Setup logging
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = SystemConfig.from_env(args.config)
        if args.host:
            config.api.host = args.host
        if args.port:
            config.api.port = args.port
        if args.mock_devices:
            config.devices.backend = "mock"
        config.validate()
    except (ConfigurationError, ValidationError) as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    app = init_app(config)
    uvicorn.run(app, host=config.api.host, port=config.api.port)


if __name__ == "__main__":
    main()
