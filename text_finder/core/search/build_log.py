import logging
from typing import TextIO

logger = logging.getLogger(__name__)


class BuildLog:
    """
    Append-only view of the caller's output sink.
    The sink is never closed here; every line is flushed as soon as it is written.
    """

    def __init__(self, sink: TextIO):
        self.sink = sink

    def println(self, line: str = ""):
        self.sink.write(f"{line}\n")
        flush = getattr(self.sink, "flush", None)
        if flush:
            flush()
        logger.debug(f"build log: {line}")
