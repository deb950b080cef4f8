"""Result objects and diagnostic types for sync log parsing.

This module defines the immutable values handed to the presentation layer: the
entity context, per-sync status records, dashboard metrics, and the diagnostics
collected while correlating log lines.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Optional, Tuple


class DiagnosticSeverity(Enum):
    """Severity levels for diagnostic entries."""

    DEBUG = auto()      # Ignored lines and no-op markers
    INFO = auto()       # Informational messages
    WARNING = auto()    # Degraded extraction or lost payload
    ERROR = auto()      # Conditions that abort the parse


@dataclass(frozen=True)
class DiagnosticEntry:
    """Single diagnostic entry tied to the log record that caused it.

    Diagnostics carry the record's own id and timestamp rather than wall-clock
    time so that parsing the same logs twice yields equal results.
    """

    severity: DiagnosticSeverity
    message: str
    component: str
    record_id: Optional[int] = None
    timestamp: Optional[str] = None
    correlation_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate diagnostic entry."""
        if not self.message:
            raise ValueError("Diagnostic message cannot be empty")
        if not self.component:
            raise ValueError("Diagnostic component cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity.name,
            "message": self.message,
            "component": self.component,
            "recordId": self.record_id,
            "timestamp": self.timestamp,
            "correlationId": self.correlation_id,
        }


@dataclass(frozen=True)
class ParseStatistics:
    """Deterministic counters describing one parse run."""

    records_processed: int = 0
    records_ignored: int = 0
    syncs_started: int = 0
    syncs_finished: int = 0
    syncs_incomplete: int = 0
    xml_blocks_captured: int = 0
    xml_blocks_empty: int = 0

    @property
    def completion_rate(self) -> float:
        """Fraction of started syncs that reached their finish marker."""
        if self.syncs_started == 0:
            return 0.0
        return self.syncs_finished / self.syncs_started

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recordsProcessed": self.records_processed,
            "recordsIgnored": self.records_ignored,
            "syncsStarted": self.syncs_started,
            "syncsFinished": self.syncs_finished,
            "syncsIncomplete": self.syncs_incomplete,
            "xmlBlocksCaptured": self.xml_blocks_captured,
            "xmlBlocksEmpty": self.xml_blocks_empty,
        }


@dataclass(frozen=True)
class EntityContext:
    """Source and target system metadata declared by the testcase start line."""

    source_system: str
    source_entity_type: str
    source_project: str
    target_system: str
    target_entity_type: str
    target_project: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceSystem": self.source_system,
            "sourceEntity": self.source_entity_type,
            "sourceProject": self.source_project,
            "targetSystem": self.target_system,
            "targetEntity": self.target_entity_type,
            "targetProject": self.target_project,
        }


@dataclass(frozen=True)
class SyncStatus:
    """One completed or force-finalized synchronization of an entity revision.

    A sync whose finish marker never appeared has ``finished_sync_time`` equal to
    ``start_sync_time``. Empty XML strings mean the payload was not captured.
    """

    source_entity_id: str
    target_entity_id: str
    revision_id: int
    start_sync_time: str
    finished_sync_time: str
    source_event_xml: str = ""
    transformed_event_xml: str = ""
    internal_id: Optional[str] = None

    @property
    def completed(self) -> bool:
        """Whether an explicit finish marker was observed."""
        return self.finished_sync_time != self.start_sync_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceEntityId": self.source_entity_id,
            "targetEntityId": self.target_entity_id,
            "revisionId": self.revision_id,
            "startSyncTime": self.start_sync_time,
            "finishedSyncTime": self.finished_sync_time,
            "sourceEventXML": self.source_event_xml,
            "transformedEventXML": self.transformed_event_xml,
        }


@dataclass(frozen=True)
class EntityDetails:
    """Entity summary shown by the dashboard details table."""

    source_entity_id: str
    source_system: str
    source_entity_type: str
    source_project: str
    target_system: str
    target_entity_type: str
    target_project: str
    target_entity_id: str
    entity_creation_time: str
    sync_status_list: Tuple[SyncStatus, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceEntityId": self.source_entity_id,
            "sourceSystem": self.source_system,
            "sourceEntityType": self.source_entity_type,
            "sourceProject": self.source_project,
            "targetSystem": self.target_system,
            "targetEntityType": self.target_entity_type,
            "targetProject": self.target_project,
            "targetEntityId": self.target_entity_id,
            "entityCreationTime": self.entity_creation_time,
            "syncStatusList": [sync.to_dict() for sync in self.sync_status_list],
        }


@dataclass(frozen=True)
class WidgetMetrics:
    """Counters rendered by the dashboard stat widgets."""

    total_syncs: int = 0
    successful_syncs: int = 0
    failed_syncs: int = 0
    error_level_logs_count: int = 0
    execution_time_ms: int = 0

    @property
    def success_rate(self) -> float:
        """Successful syncs as a fraction of all syncs."""
        if self.total_syncs == 0:
            return 0.0
        return self.successful_syncs / self.total_syncs

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalSyncs": self.total_syncs,
            "successfulSyncs": self.successful_syncs,
            "failedSyncs": self.failed_syncs,
            "errorLevelLogsCount": self.error_level_logs_count,
            "executionTimeMs": self.execution_time_ms,
        }


@dataclass(frozen=True)
class ParsedResult:
    """Complete, immutable output of one parse run."""

    entity_context: EntityContext
    entity_details: EntityDetails
    sync_status_list: Tuple[SyncStatus, ...]
    widget_metrics: WidgetMetrics
    diagnostics: Tuple[DiagnosticEntry, ...] = field(default=(), compare=False)
    statistics: ParseStatistics = field(default_factory=ParseStatistics, compare=False)

    @property
    def has_warnings(self) -> bool:
        return any(
            d.severity in (DiagnosticSeverity.WARNING, DiagnosticSeverity.ERROR)
            for d in self.diagnostics
        )

    def syncs_for_entity(self, entity_id: str) -> Tuple[SyncStatus, ...]:
        """All syncs of one source entity, in start-time order."""
        return tuple(s for s in self.sync_status_list if s.source_entity_id == entity_id)

    def to_dict(self, include_diagnostics: bool = False) -> Dict[str, Any]:
        """Render the camelCase output contract consumed by the dashboard.

        Args:
            include_diagnostics: Also include diagnostics and parse statistics

        Returns:
            JSON-serialisable dictionary
        """
        data: Dict[str, Any] = {
            "entityContext": self.entity_context.to_dict(),
            "entityDetails": self.entity_details.to_dict(),
            "syncStatusList": [sync.to_dict() for sync in self.sync_status_list],
            "widgetMetrics": self.widget_metrics.to_dict(),
        }
        if include_diagnostics:
            data["diagnostics"] = [d.to_dict() for d in self.diagnostics]
            data["statistics"] = self.statistics.to_dict()
        return data
