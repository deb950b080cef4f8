"""Testcase context extraction.

The harness announces every testcase with a single line naming the source and
target systems, entity types and projects. Two layouts are in use:

    Started testcase --->> Source: Salesforce, Account; Target: NetSuite, Customer; Project: DEFAULT, PRODUCTION
    Started testcase --->> Source System: Jira, Source Entity: Bug, Source Project: OPS, Target System: ...

The compact layout is only consulted when no labelled field is present. Fields that cannot be
found fall back to sentinel values instead of failing the parse.
"""

import re
from typing import Dict, Optional, Sequence

from sync_log_parser.shared.config import MarkerConfig, SentinelConfig
from sync_log_parser.shared.logging import get_logger
from sync_log_parser.shared.records import LogRecord
from sync_log_parser.shared.result import EntityContext

_VALUE = r"\s*:\s*([^,;]*)"

_COMPACT_PATTERNS = {
    "source": re.compile(r"\bSource\s*:\s*([^,;]*)(?:,\s*([^,;]*))?"),
    "target": re.compile(r"\bTarget\s*:\s*([^,;]*)(?:,\s*([^,;]*))?"),
    "project": re.compile(r"\bProject\s*:\s*([^,;]*)(?:,\s*([^,;]*))?"),
}

_LABELLED_PATTERNS = {
    "source_system": re.compile(r"Source System" + _VALUE),
    "source_entity_type": re.compile(r"Source Entity(?: Type)?" + _VALUE),
    "source_project": re.compile(r"Source Project" + _VALUE),
    "target_system": re.compile(r"Target System" + _VALUE),
    "target_entity_type": re.compile(r"Target Entity(?: Type)?" + _VALUE),
    "target_project": re.compile(r"Target Project" + _VALUE),
}


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _compact_fields(message: str) -> Dict[str, Optional[str]]:
    fields: Dict[str, Optional[str]] = {}
    pairs = {
        "source": ("source_system", "source_entity_type"),
        "target": ("target_system", "target_entity_type"),
        "project": ("source_project", "target_project"),
    }
    for key, (first, second) in pairs.items():
        match = _COMPACT_PATTERNS[key].search(message)
        if match:
            fields[first] = _clean(match.group(1))
            fields[second] = _clean(match.group(2))
    return fields


def parse_entity_context(
    message: str,
    sentinels: Optional[SentinelConfig] = None
) -> EntityContext:
    """Parse source/target metadata from a testcase start message.

    Args:
        message: Message containing the testcase start marker
        sentinels: Values used for fields that cannot be found

    Returns:
        EntityContext with every field populated
    """
    sentinels = sentinels or SentinelConfig()
    values: Dict[str, Optional[str]] = {}
    for name, pattern in _LABELLED_PATTERNS.items():
        match = pattern.search(message)
        if match and _clean(match.group(1)):
            values[name] = _clean(match.group(1))
    if not values:
        values = _compact_fields(message)

    def value(name: str, default: str) -> str:
        return values.get(name) or default

    return EntityContext(
        source_system=value("source_system", sentinels.unknown),
        source_entity_type=value("source_entity_type", sentinels.unknown),
        source_project=value("source_project", sentinels.default_project),
        target_system=value("target_system", sentinels.unknown),
        target_entity_type=value("target_entity_type", sentinels.unknown),
        target_project=value("target_project", sentinels.default_project),
    )


class ContextExtractor:
    """Finds the testcase declaration in a chronologically sorted log list."""

    def __init__(
        self,
        markers: Optional[MarkerConfig] = None,
        sentinels: Optional[SentinelConfig] = None,
        correlation_id: Optional[str] = None
    ) -> None:
        self.markers = markers or MarkerConfig()
        self.sentinels = sentinels or SentinelConfig()
        self.logger = get_logger(__name__, correlation_id, "context_extractor")

    def find_declaration(self, records: Sequence[LogRecord]) -> Optional[LogRecord]:
        """Return the first record announcing the testcase, if any."""
        for record in records:
            if self.markers.testcase_started in record.message:
                return record
        return None

    def extract(self, records: Sequence[LogRecord]) -> Optional[EntityContext]:
        """Extract the entity context from sorted records.

        Returns:
            EntityContext, or None when no record declares a testcase
        """
        declaration = self.find_declaration(records)
        if declaration is None:
            self.logger.warning(
                "No testcase declaration found",
                extra={"record_count": len(records)}
            )
            return None

        context = parse_entity_context(declaration.message, self.sentinels)
        self.logger.debug(
            "Testcase context extracted",
            extra={
                "record_id": declaration.id,
                "source_system": context.source_system,
                "target_system": context.target_system,
            }
        )
        return context
