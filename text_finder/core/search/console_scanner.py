import io
import re
from typing import Iterable, Union

from .models import ScanOutcome
from .file_scanner import scan_lines

CONSOLE_LABEL = "console"


def scan_console(transcript: Union[str, Iterable[str]], pattern: re.Pattern, log) -> ScanOutcome:
    # already materialized by the caller: no per-chunk error handling
    if isinstance(transcript, str):
        # universal newlines only (\n, \r, \r\n), the same split a text-mode file gets
        transcript = io.StringIO(transcript, newline=None)
    return scan_lines(transcript, pattern, CONSOLE_LABEL, log)
