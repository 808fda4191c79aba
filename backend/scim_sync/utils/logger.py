import logging
from collections.abc import MutableMapping
from typing import Any

from scim_sync.configs.app_configs import LOG_LEVEL


def get_log_level_from_str(log_level_str: str = LOG_LEVEL) -> int:
    log_level_dict = {
        "CRITICAL": logging.CRITICAL,
        "ERROR": logging.ERROR,
        "WARNING": logging.WARNING,
        "INFO": logging.INFO,
        "DEBUG": logging.DEBUG,
    }

    return log_level_dict.get(log_level_str.upper(), logging.INFO)


class SyncLoggingAdapter(logging.LoggerAdapter):
    """Prefixes messages with the realm (and component) when one is bound."""

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        extra = self.extra or {}
        realm_id = extra.get("realm_id")
        component_id = extra.get("component_id")
        if realm_id and component_id:
            msg = f"[Realm: {realm_id}] [Component: {component_id}] {msg}"
        elif realm_id:
            msg = f"[Realm: {realm_id}] {msg}"
        return msg, kwargs


def get_standard_formatter() -> logging.Formatter:
    return logging.Formatter(
        "%(levelname)-8s %(asctime)s %(filename)30s %(lineno)4s: %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )


def setup_logger(
    name: str = __name__,
    log_level: int = get_log_level_from_str(),
    extra: MutableMapping[str, Any] | None = None,
) -> SyncLoggingAdapter:
    logger = logging.getLogger(name)

    # If the logger already has handlers, assume it was already configured
    if logger.handlers:
        return SyncLoggingAdapter(logger, extra=extra)

    logger.setLevel(log_level)

    handler = logging.StreamHandler()
    handler.setLevel(log_level)
    handler.setFormatter(get_standard_formatter())
    logger.addHandler(handler)

    return SyncLoggingAdapter(logger, extra=extra)
