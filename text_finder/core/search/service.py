import logging
from pathlib import Path
from typing import Iterable, Optional, TextIO, Union

from text_finder.core.config_loader import FinderSettings
from text_finder.core.remote.bridge import RemoteExecutionBridge, build_bridge
from text_finder.core.remote.protocol import FileScanJob
from .build_log import BuildLog
from .console_scanner import scan_console
from .models import SearchRequest
from .pattern_matcher import compile_pattern, PatternCompileError

logger = logging.getLogger(__name__)


class SearchCoordinator:
    """
    Evaluates one SearchRequest: console first, then files on the machine
    that owns the workspace. The answer is always a plain bool; only
    BoundaryError escapes, when the file phase could not run at all.
    """

    def __init__(self, bridge: Optional[RemoteExecutionBridge] = None, settings: Optional[FinderSettings] = None):
        self.settings = settings or FinderSettings()
        self.bridge = bridge or build_bridge(self.settings)

    def evaluate(
        self,
        request: SearchRequest,
        workspace: Union[str, Path, None],
        console: Union[str, Iterable[str], None],
        sink: TextIO,
    ) -> bool:
        log = BuildLog(sink)

        try:
            pattern = compile_pattern(request.regex)
        except PatternCompileError as e:
            logger.info(f"Evaluation aborted: {e}")
            log.println(f"Text Finder: Unable to compile regular expression '{request.regex}'")
            return False

        if request.also_scan_console:
            log.println("Checking console output")
            outcome = scan_console(console if console is not None else "", pattern, log)
            if outcome.matched:
                logger.info("Evaluation finished: matched in console output")
                return True
        else:
            # echoing the regex while the console is scanned would match itself
            log.println(f"Checking {request.regex}")

        if request.include_pattern is None:
            return False
        if workspace is None:
            log.println("Text Finder: No workspace available, skipping file set "
                        f"'{request.include_pattern}'")
            return False

        job = FileScanJob(
            root=str(workspace),
            include_pattern=request.include_pattern,
            regex=request.regex,
            encoding=self.settings.encoding,
            default_excludes=self.settings.default_excludes,
            case_sensitive=self.settings.case_sensitive,
        )
        outcome = self.bridge.run(job, log)

        if outcome.aborted:
            logger.info(f"Evaluation aborted: {outcome.reason}")
            return False
        logger.info(f"Evaluation finished: matched={outcome.matched}")
        return outcome.matched
