from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ConvertedEvent:
    """One structured output event produced from an uploaded file."""

    topic: str
    key: dict[str, Any]
    value: dict[str, Any]


@dataclass
class ConversionResult:
    """Accumulates events and log lines while a record is converted."""

    record_id: int
    events: list[ConvertedEvent] = field(default_factory=list)
    log_lines: list[str] = field(default_factory=list)

    def log(self, line: str) -> None:
        self.log_lines.append(line)

    @property
    def logs(self) -> str:
        return "\n".join(self.log_lines)
