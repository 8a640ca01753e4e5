import asyncio
import logging
import logging.config
import sys

from exchanges.errors import ConfigurationError
from services.relay.app import EXIT_FAILURE, EXIT_OK, RelayApp
from services.relay.settings import RelaySettings

LOG_FORMAT = "%(asctime)s | %(levelname)s %(name)s:%(lineno)d | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
# Third-party loggers that are chatty at INFO.
QUIET_LOGGERS = ("websockets", "httpx", "httpcore", "apscheduler")


def build_logging_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT, "datefmt": LOG_DATEFMT},
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stderr",
            },
        },
        "root": {"handlers": ["default"], "level": level},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    }


def main() -> int:
    try:
        settings = RelaySettings.from_env()
    except ConfigurationError as exc:
        logging.basicConfig(format=LOG_FORMAT, datefmt=LOG_DATEFMT, level=logging.INFO)
        logging.getLogger("run_relay").error("Invalid configuration: %s", exc)
        return EXIT_FAILURE

    logging.config.dictConfig(build_logging_config(settings.log_level))
    logger = logging.getLogger("run_relay")
    logger.info("Initializing relay for vault %s on %s...", settings.vault_address, settings.network)
    try:
        return asyncio.run(RelayApp(settings).run())
    except KeyboardInterrupt:
        logger.info("Interrupted, relay stopped.")
        return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
