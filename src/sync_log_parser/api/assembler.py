"""Folds the testcase context and correlated syncs into the dashboard result."""

from datetime import timedelta
from typing import Optional, Sequence

from sync_log_parser.correlation.correlator import CorrelationOutcome
from sync_log_parser.shared.config import ParserConfig
from sync_log_parser.shared.records import LogRecord
from sync_log_parser.shared.result import (
    EntityContext,
    EntityDetails,
    ParsedResult,
    SyncStatus,
    WidgetMetrics,
)

_ONE_MS = timedelta(milliseconds=1)


def build_entity_details(
    context: EntityContext,
    syncs: Sequence[SyncStatus],
    unknown: str = "UNKNOWN"
) -> EntityDetails:
    """Build the entity summary from the context and the first sync."""
    first = syncs[0] if syncs else None
    return EntityDetails(
        source_entity_id=first.source_entity_id if first else unknown,
        source_system=context.source_system,
        source_entity_type=context.source_entity_type,
        source_project=context.source_project,
        target_system=context.target_system,
        target_entity_type=context.target_entity_type,
        target_project=context.target_project,
        target_entity_id=first.target_entity_id if first else unknown,
        entity_creation_time=first.start_sync_time if first else "",
        sync_status_list=tuple(syncs),
    )


def calculate_widget_metrics(
    syncs: Sequence[SyncStatus],
    records: Sequence[LogRecord],
    config: Optional[ParserConfig] = None
) -> WidgetMetrics:
    """Compute dashboard counters.

    Args:
        syncs: Finalized syncs
        records: All records of the run, sorted by timestamp
        config: Parser configuration (error indicator)

    Returns:
        WidgetMetrics for the stat widgets
    """
    config = config or ParserConfig()
    total = len(syncs)
    successful = sum(1 for sync in syncs if sync.completed)
    errors = sum(1 for record in records if config.metrics.is_error_message(record.message))

    execution_time_ms = 0
    if len(records) > 1:
        execution_time_ms = (records[-1].moment - records[0].moment) // _ONE_MS

    return WidgetMetrics(
        total_syncs=total,
        successful_syncs=successful,
        failed_syncs=total - successful,
        error_level_logs_count=errors,
        execution_time_ms=execution_time_ms,
    )


class ResultAssembler:
    """Builds the immutable ParsedResult handed to the presentation layer."""

    def __init__(self, config: Optional[ParserConfig] = None) -> None:
        self.config = config or ParserConfig()

    def assemble(
        self,
        context: EntityContext,
        outcome: CorrelationOutcome,
        records: Sequence[LogRecord]
    ) -> ParsedResult:
        syncs = outcome.syncs
        return ParsedResult(
            entity_context=context,
            entity_details=build_entity_details(
                context, syncs, self.config.sentinels.unknown
            ),
            sync_status_list=syncs,
            widget_metrics=calculate_widget_metrics(syncs, records, self.config),
            diagnostics=outcome.diagnostics,
            statistics=outcome.statistics,
        )
