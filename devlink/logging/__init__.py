"""Structured logging for the notifier: formatters, context and component loggers."""

import logging
from typing import Optional, Union


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that tags every record with a component name.

    Fields passed through ``extra`` on the individual call win over the
    adapter's own fields.
    """

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(
    name: str, component: Optional[str] = None
) -> Union[logging.Logger, ComponentLoggerAdapter]:
    """Get a logger, optionally bound to a component.

    Args:
        name: Logger name (typically __name__)
        component: Component label added to every record (e.g. "jobs", "mailer")

    Returns:
        Plain logger, or a ComponentLoggerAdapter when a component is given

    Example:
        >>> logger = get_logger(__name__, component="jobs")
        >>> logger.info("Weekly digest started", extra={"event": "job.run.started"})
    """
    logger = logging.getLogger(name)

    if component:
        return ComponentLoggerAdapter(logger, {"component": component})

    return logger
