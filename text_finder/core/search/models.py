from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional, Dict, Any


@dataclass(frozen=True)
class SearchRequest:
    """
    Parameters of one evaluation.
    An include pattern that is empty or only whitespace means "no file phase".
    """
    regex: str
    include_pattern: Optional[str] = None
    also_scan_console: bool = False

    def __post_init__(self):
        pattern = self.include_pattern.strip() if self.include_pattern else ""
        object.__setattr__(self, "include_pattern", pattern or None)


class Outcome(str, Enum):
    MATCHED = "MATCHED"
    NOT_MATCHED = "NOT_MATCHED"
    ABORTED = "ABORTED"


@dataclass(frozen=True)
class ScanOutcome:
    """
    Result of scanning one source, or a whole phase.
    source_label/line are informational only.
    """
    outcome: Outcome
    source_label: Optional[str] = None
    line: Optional[str] = None
    reason: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.outcome is Outcome.MATCHED

    @property
    def aborted(self) -> bool:
        return self.outcome is Outcome.ABORTED

    @classmethod
    def hit(cls, source_label: str, line: str) -> "ScanOutcome":
        return cls(Outcome.MATCHED, source_label=source_label, line=line)

    @classmethod
    def miss(cls, source_label: Optional[str] = None) -> "ScanOutcome":
        return cls(Outcome.NOT_MATCHED, source_label=source_label)

    @classmethod
    def abort(cls, reason: str) -> "ScanOutcome":
        return cls(Outcome.ABORTED, reason=reason)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["outcome"] = self.outcome.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScanOutcome":
        return cls(
            outcome=Outcome(data["outcome"]),
            source_label=data.get("source_label"),
            line=data.get("line"),
            reason=data.get("reason"),
        )
