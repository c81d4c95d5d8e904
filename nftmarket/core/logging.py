import logging
import sys
from pythonjsonlogger import jsonlogger
from nftmarket.core.config import Settings


class MarketJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter that stamps every record with the service name and
    environment. Fields passed via `extra` (marketplace, listing_id, ...)
    land as top-level keys.
    """

    def __init__(self, *args, service: str, environment: str, **kwargs):
        super().__init__(*args, **kwargs)
        self.service = service
        self.environment = environment

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("service", self.service)
        log_record.setdefault("environment", self.environment)


def build_formatter(settings: Settings) -> MarketJsonFormatter:
    return MarketJsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={"levelname": "level", "name": "logger"},
        service=settings.app_name,
        environment=settings.environment,
    )


def configure_logging(settings: Settings) -> None:
    """
    JSON logs to stdout, configured once per process from create_app().
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    # clear handlers if reloaded
    root.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter(settings))
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(level)
    logging.getLogger("uvicorn.error").setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
