"""
File phase of an evaluation, executed on the machine that owns the workspace.

Run as a module, it reads one FileScanJob (JSON) from stdin and answers with
JSON lines on stdout: log messages in emission order, then a single result.
"""
import sys
import logging
from pathlib import Path
from typing import Callable, Dict, Any

from text_finder.core.search.models import ScanOutcome
from text_finder.core.search.pattern_matcher import compile_pattern, PatternCompileError
from text_finder.core.search.file_enumerator import enumerate_files
from text_finder.core.search.file_scanner import scan_file
from .protocol import FileScanJob, RESULT, encode_message, log_message

logger = logging.getLogger(__name__)


class ChannelLog:
    """Build log stand-in whose lines become messages on the channel."""

    def __init__(self, emit: Callable[[Dict[str, Any]], None]):
        self.emit = emit

    def println(self, line: str = ""):
        self.emit(log_message(line))


def run_file_scan(job: FileScanJob, log) -> ScanOutcome:
    root = Path(job.root)
    if not root.is_dir():
        log.println(f"Text Finder: Workspace '{root}' is not a directory")
        return ScanOutcome.abort(f"workspace {root} missing")

    files = enumerate_files(root, job.include_pattern, job.default_excludes, job.case_sensitive)
    if not files:
        log.println(f"Text Finder: File set '{job.include_pattern}' is empty")
        return ScanOutcome.abort(f"file set '{job.include_pattern}' is empty")

    try:
        pattern = compile_pattern(job.regex)
    except PatternCompileError as e:
        log.println(f"Text Finder: Unable to compile regular expression '{job.regex}'")
        return ScanOutcome.abort(str(e))

    for rel_path in files:
        outcome = scan_file(root / rel_path, pattern, log, job.encoding)
        if outcome.matched:
            return outcome

    logger.debug(f"No match in {len(files)} file(s) under {root}")
    return ScanOutcome.miss()


def main() -> int:
    def emit(message):
        sys.stdout.write(encode_message(message) + "\n")
        sys.stdout.flush()

    job = FileScanJob.from_json(sys.stdin.read())
    outcome = run_file_scan(job, ChannelLog(emit))
    emit({"type": RESULT, **outcome.to_dict()})
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
