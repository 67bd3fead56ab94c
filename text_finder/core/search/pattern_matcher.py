import re
import logging

logger = logging.getLogger(__name__)


class PatternCompileError(ValueError):
    def __init__(self, regex: str, detail: str):
        super().__init__(f"Unable to compile regular expression '{regex}': {detail}")
        self.regex = regex
        self.detail = detail


def compile_pattern(regex: str) -> re.Pattern:
    """
    Compiles the user supplied expression once per evaluation.
    Raises PatternCompileError for anything `re` rejects.
    """
    if regex is None:
        raise PatternCompileError("None", "no regular expression configured")
    try:
        return re.compile(regex)
    except re.error as e:
        logger.debug(f"Rejected regex {regex!r}: {e}")
        raise PatternCompileError(regex, str(e)) from e


def finds_match(pattern: re.Pattern, line: str) -> bool:
    # search, not match: a hit anywhere in the line counts
    return pattern.search(line) is not None
