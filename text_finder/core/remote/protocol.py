import json
from dataclasses import dataclass, asdict
from typing import Dict, Any

from text_finder.core.search.file_scanner import DEFAULT_ENCODING

# message types on the worker -> caller stream
LOG = "log"
RESULT = "result"
ERROR = "error"


class ProtocolError(ValueError):
    pass


@dataclass(frozen=True)
class FileScanJob:
    """
    Everything the far side needs for the file phase.
    The regex travels as source text and is compiled again over there.
    """
    root: str
    include_pattern: str
    regex: str
    encoding: str = DEFAULT_ENCODING
    default_excludes: bool = True
    case_sensitive: bool = True

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, text: str) -> "FileScanJob":
        try:
            data = json.loads(text)
            return cls(**data)
        except (ValueError, TypeError) as e:
            raise ProtocolError(f"Invalid job document: {e}") from e


def encode_message(message: Dict[str, Any]) -> str:
    return json.dumps(message)


def decode_message(line: str) -> Dict[str, Any]:
    try:
        message = json.loads(line)
    except ValueError as e:
        raise ProtocolError(f"Malformed message {line!r}: {e}") from e
    if not isinstance(message, dict) or message.get("type") not in (LOG, RESULT, ERROR):
        raise ProtocolError(f"Unknown message {line!r}")
    return message


def log_message(line: str) -> Dict[str, Any]:
    return {"type": LOG, "line": line}
