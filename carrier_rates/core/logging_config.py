import logging

from carrier_rates.core.config import Settings

# Settings uses "warn"; logging only knows WARNING
_LEVEL_ALIASES = {"warn": "WARNING"}


def configure_logging(settings: Settings) -> None:
    """Basic logging configuration driven by LOG_LEVEL."""
    level_name = _LEVEL_ALIASES.get(settings.LOG_LEVEL, settings.LOG_LEVEL.upper())
    log_level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    logging.getLogger("carrier_rates").setLevel(log_level)
    # httpx logs every request at INFO; keep it quiet unless debugging
    if log_level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured, level={level_name}, environment={settings.ENVIRONMENT}"
    )
