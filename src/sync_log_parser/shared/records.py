"""Input log records supplied by the log-retrieval layer.

Records arrive in no particular order; the parser re-sorts them by the parsed
timestamp. Each record keeps its original timestamp string so that sync times in
the output are reported exactly as the harness wrote them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class LogLevel(Enum):
    """Severity levels emitted by the integration-test harness."""

    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    DEBUG = "DEBUG"
    TRACE = "TRACE"

    @classmethod
    def from_value(cls, value: Any) -> "LogLevel":
        """Resolve a level from an enum member or a case-insensitive name."""
        if isinstance(value, cls):
            return value
        name = str(value).strip().upper()
        if name == "WARNING":
            name = "WARN"
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unknown log level: {value!r}") from None


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime.

    A trailing ``Z`` is accepted and naive timestamps are taken as UTC.

    Raises:
        ValueError: If the value is not an ISO-8601 timestamp
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


# Harness JSON keys mapped to LogRecord field names
_KEY_ALIASES = {
    "timeStamp": "timestamp",
    "logLevel": "level",
    "logClass": "log_class",
    "jenkinsServer": "host",
    "testcaseId": "testcase_id",
    "threadName": "thread_name",
    "lineNumber": "line_number",
}


@dataclass(frozen=True)
class LogRecord:
    """One immutable log line as produced by the harness."""

    id: int
    timestamp: str
    level: LogLevel
    message: str
    log_class: str = ""
    host: str = ""
    testcase_id: Optional[str] = None
    thread_name: Optional[str] = None
    line_number: Optional[int] = None
    moment: datetime = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Validate the timestamp and message and normalise the level."""
        if self.message is not None and not isinstance(self.message, str):
            raise ValueError(
                f"Log record {self.id} has a non-string message: "
                f"{type(self.message).__name__}"
            )
        try:
            moment = parse_timestamp(self.timestamp)
        except (TypeError, ValueError, AttributeError) as e:
            raise ValueError(
                f"Log record {self.id} has an invalid timestamp: {self.timestamp!r}"
            ) from e
        object.__setattr__(self, "moment", moment)
        object.__setattr__(self, "level", LogLevel.from_value(self.level))
        if self.message is None:
            object.__setattr__(self, "message", "")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LogRecord":
        """Create a record from a harness JSON object.

        Both the camelCase keys used by the harness (``timeStamp``, ``logLevel``,
        ``logClass``, ``jenkinsServer``...) and snake_case field names are accepted.
        Unknown keys are ignored.

        Raises:
            ValueError: If the data is not an object or a required key is missing
                or malformed
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Log record must be an object, got {type(data).__name__}")

        values: Dict[str, Any] = {}
        for key, value in data.items():
            name = _KEY_ALIASES.get(key, key)
            if name in cls.__dataclass_fields__ and name != "moment":
                values[name] = value

        missing = [name for name in ("id", "timestamp", "level", "message")
                   if name not in values]
        if missing:
            raise ValueError(f"Log record is missing required keys: {', '.join(missing)}")

        try:
            values["id"] = int(values["id"])
            if values.get("line_number") is not None:
                values["line_number"] = int(values["line_number"])
        except (TypeError, ValueError) as e:
            raise ValueError(f"Log record has a non-integer id or line number: {e}") from e
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the record back to the harness JSON layout."""
        data: Dict[str, Any] = {
            "id": self.id,
            "timeStamp": self.timestamp,
            "logLevel": self.level.value,
            "message": self.message,
            "logClass": self.log_class,
            "jenkinsServer": self.host,
        }
        if self.testcase_id is not None:
            data["testcaseId"] = self.testcase_id
        if self.thread_name is not None:
            data["threadName"] = self.thread_name
        if self.line_number is not None:
            data["lineNumber"] = self.line_number
        return data
