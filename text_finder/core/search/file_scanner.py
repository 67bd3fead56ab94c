import os
import re
import logging
from pathlib import Path
from typing import Iterable, Union

from .models import ScanOutcome
from .pattern_matcher import finds_match

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"


def scan_lines(lines: Iterable[str], pattern: re.Pattern, source_label: str, log) -> ScanOutcome:
    """
    Line-oriented first-match-wins scan shared by files and the console.
    On a hit, writes the source label and the matching line to the build log.
    """
    for raw in lines:
        line = raw.rstrip("\r\n")
        if finds_match(pattern, line):
            log.println(f"{source_label}:")
            log.println(line)
            return ScanOutcome.hit(source_label, line)
    return ScanOutcome.miss(source_label)


def _open_text(path: Path, encoding: str):
    return open(path, "r", encoding=encoding, errors="replace")


def scan_file(
    path: Union[str, Path],
    pattern: re.Pattern,
    log,
    encoding: str = DEFAULT_ENCODING,
) -> ScanOutcome:
    """
    Scans a single file. Missing or unreadable files and read errors are
    reported to the build log and count as "no match"; they never raise.
    """
    path = Path(path)
    label = str(path)

    if not path.exists():
        log.println(f"Text Finder: Unable to find file '{path}'")
        return ScanOutcome.miss(label)
    if not os.access(path, os.R_OK):
        log.println(f"Text Finder: Unable to read from file '{path}'")
        return ScanOutcome.miss(label)

    try:
        handle = _open_text(path, encoding)
    except OSError as e:
        log.println(f"Text Finder: Unable to read from file '{path}' ({e.strerror or e})")
        return ScanOutcome.miss(label)

    with handle:
        try:
            return scan_lines(handle, pattern, label, log)
        except OSError as e:
            logger.debug(f"Read failure on {path}: {e}")
            log.println(f"Text Finder: Error reading file '{path}' -- ignoring")
            return ScanOutcome.miss(label)
