"""Single-pass sync correlation over chronologically sorted log records.

The correlator keeps one ActiveSync per EI correlation key. Each record is routed
by an explicit, ordered dispatch table whose first matching rule wins; structural
markers are always tried before the payload fallback, so marker lines never end
up inside an XML buffer. Syncs are emitted as SyncStatus values when their finish
marker appears, and any sync still active at the end of the stream is finalized
with whatever it captured.

A SyncCorrelator instance owns all mutable state of one run and must not be
reused; SyncLogParser creates a fresh one per parse call.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sync_log_parser.correlation.matchers import (
    KeyMatch,
    MessageMatchers,
    match_correlation_key,
    match_created_entity,
    match_sync_marker,
    strip_correlation_key,
)
from sync_log_parser.correlation.states import (
    OPEN_BLOCK_CLOSERS,
    XmlAction,
    XmlEvent,
    XmlState,
    next_transition,
)
from sync_log_parser.sanitization.sanitizer import XmlSanitizer
from sync_log_parser.shared.config import ParserConfig
from sync_log_parser.shared.logging import get_logger
from sync_log_parser.shared.records import LogRecord
from sync_log_parser.shared.result import (
    DiagnosticEntry,
    DiagnosticSeverity,
    ParseStatistics,
    SyncStatus,
)

COMPONENT = "sync_correlator"


@dataclass
class ActiveSync:
    """Mutable record of a sync whose finish marker has not been seen yet."""

    key: str
    entity_id: str
    revision_id: int
    start_time: str
    start_moment: datetime
    finish_time: Optional[str] = None
    internal_id: Optional[str] = None
    display_id: Optional[str] = None
    source_buffer: List[str] = field(default_factory=list)
    transformed_buffer: List[str] = field(default_factory=list)
    source_xml: str = ""
    transformed_xml: str = ""
    state: XmlState = XmlState.NONE


@dataclass(frozen=True)
class DispatchRule:
    """One entry of the ordered dispatch table."""

    name: str
    predicate: Callable[[LogRecord, Optional[KeyMatch]], bool]
    handler: Callable[[LogRecord, Optional[KeyMatch]], None]


@dataclass(frozen=True)
class CorrelationOutcome:
    """Syncs, diagnostics and counters produced by one correlation run."""

    syncs: Tuple[SyncStatus, ...]
    diagnostics: Tuple[DiagnosticEntry, ...]
    statistics: ParseStatistics


class SyncCorrelator:
    """Reconstructs sync records from sorted log records in one linear pass."""

    def __init__(
        self,
        config: Optional[ParserConfig] = None,
        correlation_id: Optional[str] = None
    ) -> None:
        self.config = config or ParserConfig()
        self.logger = get_logger(__name__, correlation_id, COMPONENT)
        self.matchers = MessageMatchers(self.config.markers)
        self.sanitizer = XmlSanitizer(self.config.xml)

        self._active: Dict[str, ActiveSync] = {}
        self._completed: List[Tuple[datetime, SyncStatus]] = []
        self._diagnostics: List[DiagnosticEntry] = []
        self._counters: Dict[str, int] = dict.fromkeys(
            ParseStatistics.__dataclass_fields__, 0
        )
        self._consumed = False

        m = self.matchers
        self.rules: Tuple[DispatchRule, ...] = (
            DispatchRule(
                "start_sync",
                lambda record, key: m.is_start_sync(record.message),
                self._handle_start_sync,
            ),
            DispatchRule(
                "about_to_transform",
                lambda record, key: m.is_about_to_transform(record.message),
                self._handle_about_to_transform,
            ),
            DispatchRule(
                "xml_marker",
                lambda record, key: m.has_xml_marker(record.message),
                self._handle_xml_markers,
            ),
            DispatchRule(
                "entity_created",
                lambda record, key: m.is_entity_created(record.message),
                self._handle_entity_created,
            ),
            DispatchRule(
                "finish_sync",
                lambda record, key: m.is_finish_sync(record.message),
                self._handle_finish_sync,
            ),
            # Must stay last: payload lines are whatever no marker rule claimed
            DispatchRule("xml_body", self._is_payload_line, self._handle_payload_line),
        )

    def run(self, records: Sequence[LogRecord]) -> CorrelationOutcome:
        """Correlate chronologically sorted records into sync statuses.

        Args:
            records: Records sorted ascending by timestamp

        Returns:
            CorrelationOutcome with syncs sorted by start time
        """
        if self._consumed:
            raise RuntimeError("SyncCorrelator instances cannot be reused")
        self._consumed = True

        for record in records:
            self._counters["records_processed"] += 1
            self.process(record)

        self._finalize_incomplete_syncs()

        ordered = sorted(self._completed, key=lambda item: item[0])
        return CorrelationOutcome(
            syncs=tuple(status for _, status in ordered),
            diagnostics=tuple(self._diagnostics),
            statistics=ParseStatistics(**self._counters),
        )

    def process(self, record: LogRecord) -> None:
        """Route one record through the dispatch table; first match wins."""
        key = match_correlation_key(record.message)
        for rule in self.rules:
            if rule.predicate(record, key):
                rule.handler(record, key)
                return
        self._counters["records_ignored"] += 1

    # Dispatch handlers

    def _handle_start_sync(self, record: LogRecord, key: Optional[KeyMatch]) -> None:
        if key is None:
            self._ignore(record, "Start marker without correlation key",
                         DiagnosticSeverity.WARNING)
            return

        previous = self._active.pop(key.key, None)
        if previous is not None:
            self._diagnose(
                DiagnosticSeverity.WARNING,
                "Sync restarted before finishing; earlier attempt finalized as incomplete",
                record,
                key.key,
            )
            self._close_open_block(previous, record)
            self._materialize(previous, finished=False)

        marker = match_sync_marker(record.message)
        sentinels = self.config.sentinels
        self._active[key.key] = ActiveSync(
            key=key.key,
            entity_id=marker.entity_id or sentinels.unknown,
            revision_id=(
                marker.revision_id
                if marker.revision_id is not None
                else sentinels.default_revision
            ),
            start_time=record.timestamp,
            start_moment=record.moment,
        )
        self._counters["syncs_started"] += 1
        self.logger.bind(key.key).debug(
            "Sync started",
            extra={"entity_id": marker.entity_id, "revision_id": marker.revision_id}
        )

    def _handle_about_to_transform(self, record: LogRecord, key: Optional[KeyMatch]) -> None:
        # Placeholder marker; the transform phase is announced but carries no data
        self.logger.bind(key.key if key else None).debug(
            "Transform announced", extra={"record_id": record.id}
        )

    def _handle_xml_markers(self, record: LogRecord, key: Optional[KeyMatch]) -> None:
        sync = self._lookup(record, key, "XML marker", DiagnosticSeverity.WARNING)
        if sync is None:
            return

        text = strip_correlation_key(record.message, key)
        for event, body in self.matchers.split_xml_record(text):
            self._apply(sync, event, record, body)

    def _handle_entity_created(self, record: LogRecord, key: Optional[KeyMatch]) -> None:
        sync = self._lookup(record, key, "Entity creation")
        if sync is None:
            return

        created = match_created_entity(record.message)
        if created.internal_id:
            sync.internal_id = created.internal_id
        if created.display_id:
            sync.display_id = created.display_id
        if not (created.internal_id or created.display_id):
            self._diagnose(
                DiagnosticSeverity.WARNING,
                "Entity creation message carries no identifiers",
                record,
                sync.key,
            )

    def _handle_finish_sync(self, record: LogRecord, key: Optional[KeyMatch]) -> None:
        sync = self._lookup(record, key, "Finish marker", DiagnosticSeverity.WARNING)
        if sync is None:
            return

        self._close_open_block(sync, record)
        sync.finish_time = record.timestamp
        del self._active[sync.key]
        self._materialize(sync, finished=True)
        self.logger.bind(sync.key).debug(
            "Sync finished", extra={"entity_id": sync.entity_id}
        )

    def _is_payload_line(self, record: LogRecord, key: Optional[KeyMatch]) -> bool:
        if key is None:
            return False
        sync = self._active.get(key.key)
        return sync is not None and sync.state.collecting

    def _handle_payload_line(self, record: LogRecord, key: Optional[KeyMatch]) -> None:
        sync = self._active[key.key]
        self._apply(sync, XmlEvent.BODY, record, strip_correlation_key(record.message, key))

    # State machine

    def _apply(
        self,
        sync: ActiveSync,
        event: XmlEvent,
        record: LogRecord,
        text: Optional[str] = None
    ) -> None:
        transition = next_transition(sync.state, event)
        if transition is None:
            if event is not XmlEvent.BODY:
                self._diagnose(
                    DiagnosticSeverity.DEBUG,
                    f"Ignored {event.name} while in {sync.state.name}",
                    record,
                    sync.key,
                )
            return

        for action in transition.actions:
            self._perform(sync, action, record, text)
        sync.state = transition.new_state

    def _perform(
        self,
        sync: ActiveSync,
        action: XmlAction,
        record: Optional[LogRecord],
        text: Optional[str]
    ) -> None:
        if action is XmlAction.RESET_SOURCE:
            sync.source_buffer = []
        elif action is XmlAction.APPEND_SOURCE:
            sync.source_buffer.append(f"{text}\n")
        elif action is XmlAction.RESET_TRANSFORMED:
            sync.transformed_buffer = []
        elif action is XmlAction.APPEND_TRANSFORMED:
            sync.transformed_buffer.append(f"{text}\n")
        elif action in (XmlAction.CLOSE_SOURCE, XmlAction.ABANDON_SOURCE):
            sync.source_xml = self._close_block(
                sync, "source", sync.source_buffer, record,
                terminated=action is XmlAction.CLOSE_SOURCE,
            )
            sync.source_buffer = []
        elif action in (XmlAction.CLOSE_TRANSFORMED, XmlAction.ABANDON_TRANSFORMED):
            sync.transformed_xml = self._close_block(
                sync, "transformed", sync.transformed_buffer, record,
                terminated=action is XmlAction.CLOSE_TRANSFORMED,
            )
            sync.transformed_buffer = []

    def _close_block(
        self,
        sync: ActiveSync,
        block: str,
        buffer: List[str],
        record: Optional[LogRecord],
        terminated: bool
    ) -> str:
        raw = "".join(buffer)
        if block == "source":
            result = self.sanitizer.sanitize_source(raw)
        else:
            result = self.sanitizer.sanitize_transformed(raw)

        if result.success:
            self._counters["xml_blocks_captured"] += 1
            return result.xml

        self._counters["xml_blocks_empty"] += 1
        if not terminated and self.config.xml.keep_unterminated_payload and raw.strip():
            self._diagnose(
                DiagnosticSeverity.WARNING,
                f"Unterminated {block} XML kept as raw text",
                record,
                sync.key,
            )
            return raw.strip()

        reason = (
            "no XML declaration" if not result.declaration_found
            else f"closing tag {result.closing_tag} not found"
        )
        self._diagnose(
            DiagnosticSeverity.WARNING,
            f"No {block} XML captured: {reason}",
            record,
            sync.key,
        )
        return ""

    def _close_open_block(self, sync: ActiveSync, record: Optional[LogRecord]) -> None:
        closer = OPEN_BLOCK_CLOSERS.get(sync.state)
        if closer is not None:
            self._perform(sync, closer, record, None)
            sync.state = XmlState.NONE

    # Lifecycle

    def _materialize(self, sync: ActiveSync, finished: bool) -> None:
        sentinels = self.config.sentinels
        status = SyncStatus(
            source_entity_id=sync.entity_id,
            target_entity_id=sync.display_id or sentinels.unknown,
            revision_id=sync.revision_id,
            start_sync_time=sync.start_time,
            finished_sync_time=sync.finish_time if finished else sync.start_time,
            source_event_xml=sync.source_xml,
            transformed_event_xml=sync.transformed_xml,
            internal_id=sync.internal_id,
        )
        self._completed.append((sync.start_moment, status))
        self._counters["syncs_finished" if finished else "syncs_incomplete"] += 1

    def _finalize_incomplete_syncs(self) -> None:
        for sync in self._active.values():
            self._close_open_block(sync, None)
            self._diagnostics.append(DiagnosticEntry(
                severity=DiagnosticSeverity.INFO,
                message="Sync never finished; finalized at end of stream",
                component=COMPONENT,
                timestamp=sync.start_time,
                correlation_id=sync.key,
            ))
            self._materialize(sync, finished=False)
            self.logger.bind(sync.key).info(
                "Incomplete sync finalized", extra={"entity_id": sync.entity_id}
            )
        self._active.clear()

    # Helpers

    def _lookup(
        self,
        record: LogRecord,
        key: Optional[KeyMatch],
        what: str,
        severity: DiagnosticSeverity = DiagnosticSeverity.DEBUG
    ) -> Optional[ActiveSync]:
        if key is None:
            self._ignore(record, f"{what} without correlation key", severity)
            return None
        sync = self._active.get(key.key)
        if sync is None:
            self._ignore(record, f"{what} for unknown sync {key.key}", severity, key.key)
        return sync

    def _ignore(
        self,
        record: LogRecord,
        message: str,
        severity: DiagnosticSeverity,
        correlation_id: Optional[str] = None
    ) -> None:
        self._counters["records_ignored"] += 1
        self._diagnose(severity, message, record, correlation_id)

    def _diagnose(
        self,
        severity: DiagnosticSeverity,
        message: str,
        record: Optional[LogRecord],
        correlation_id: Optional[str]
    ) -> None:
        self._diagnostics.append(DiagnosticEntry(
            severity=severity,
            message=message,
            component=COMPONENT,
            record_id=record.id if record else None,
            timestamp=record.timestamp if record else None,
            correlation_id=correlation_id,
        ))
        if severity is DiagnosticSeverity.WARNING:
            self.logger.bind(correlation_id).warning(
                message, extra={"record_id": record.id if record else None}
            )
