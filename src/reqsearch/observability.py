"""Logging setup and the per-operation run context."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: int | str = logging.INFO) -> None:
    """Configure root logging for command-line use."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("reqsearch").setLevel(level)


@dataclass(frozen=True)
class RunContext:
    """Observability context handed to a single ``index`` or ``search`` call.

    Attributes
    ----------
    debug:
        When set, :meth:`trace` messages are promoted from DEBUG to INFO so
        they show up without changing the global log level.
    logger:
        Logger that receives the traces.
    """

    debug: bool = False
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("reqsearch.trace"))

    def trace(self, msg: str, *args: object) -> None:
        level = logging.INFO if self.debug else logging.DEBUG
        self.logger.log(level, msg, *args)


DEFAULT_CONTEXT = RunContext()
