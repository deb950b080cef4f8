"""Core parser API with progressive disclosure for sync log parsing.

This module provides the main parsing API, from the module-level ``parse_logs``
function to the configurable ``SyncLogParser`` class. Parsing is a deterministic
function of the input records: the records are re-sorted internally, so their
input order never affects the result.
"""

import json
import time
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Union

from sync_log_parser.api.assembler import ResultAssembler
from sync_log_parser.context.extractor import ContextExtractor
from sync_log_parser.correlation.correlator import SyncCorrelator
from sync_log_parser.shared import (
    LogRecord,
    ParsedResult,
    ParserConfig,
    get_logger,
)

RecordInput = Union[LogRecord, Mapping[str, Any]]

MS_PER_SECOND = 1000


def _coerce_records(records: Iterable[RecordInput]) -> List[LogRecord]:
    return [
        record if isinstance(record, LogRecord) else LogRecord.from_dict(record)
        for record in records
    ]


def sort_records(records: Iterable[LogRecord]) -> List[LogRecord]:
    """Sort records ascending by timestamp; ties keep their input order."""
    return sorted(records, key=lambda record: record.moment)


class SyncLogParser:
    """Configurable sync log parser.

    The parser holds only immutable configuration; every ``parse`` call builds
    its own correlator, so one instance can be shared between callers.

    Examples:
        >>> parser = SyncLogParser(ParserConfig.lenient())
        >>> result = parser.parse(records)
        >>> [sync.revision_id for sync in result.sync_status_list]
        [1, 2]
    """

    def __init__(
        self,
        config: Optional[ParserConfig] = None,
        correlation_id: Optional[str] = None
    ) -> None:
        """Initialize the parser.

        Args:
            config: Parser configuration (defaults to ParserConfig.default())
            correlation_id: Optional correlation ID for request tracking
        """
        self.config = config or ParserConfig.default()
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "sync_log_parser")

    def parse(self, records: Iterable[RecordInput]) -> Optional[ParsedResult]:
        """Reconstruct the sync history described by a list of log records.

        Args:
            records: LogRecord instances or harness JSON objects, in any order

        Returns:
            ParsedResult, or None when no record declares a testcase

        Raises:
            ValueError: If a JSON object is not a valid log record
        """
        start_time = time.time()
        ordered = sort_records(_coerce_records(records))

        context = ContextExtractor(
            self.config.markers, self.config.sentinels, self.correlation_id
        ).extract(ordered)
        if context is None:
            return None

        outcome = SyncCorrelator(self.config, self.correlation_id).run(ordered)
        result = ResultAssembler(self.config).assemble(context, outcome, ordered)

        self.logger.info(
            "Log parse completed",
            extra={
                "record_count": len(ordered),
                "sync_count": len(result.sync_status_list),
                "incomplete_syncs": outcome.statistics.syncs_incomplete,
                "processing_time_ms": (time.time() - start_time) * MS_PER_SECOND,
            }
        )
        return result


def parse_logs(
    records: Iterable[RecordInput],
    config: Optional[ParserConfig] = None,
    correlation_id: Optional[str] = None
) -> Optional[ParsedResult]:
    """Parse harness log records into a sync history.

    This is the primary entry point.

    Args:
        records: LogRecord instances or harness JSON objects, in any order
        config: Optional parser configuration
        correlation_id: Optional correlation ID for request tracking

    Returns:
        ParsedResult, or None when no testcase declaration is present
    """
    return SyncLogParser(config, correlation_id).parse(records)


def load_log_records(path: Union[str, Path]) -> List[LogRecord]:
    """Load log records from a JSON array or JSON-lines file.

    A JSON object with a ``logs`` array (the log service response layout) is
    accepted as well.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the content is not valid JSON or not valid log records
    """
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # JSON lines: one record object per line
        data = [json.loads(line) for line in text.splitlines() if line.strip()]
    else:
        if isinstance(data, dict):
            data = data.get("logs", [data])

    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a list of log records")
    return _coerce_records(data)


def parse_log_file(
    path: Union[str, Path],
    config: Optional[ParserConfig] = None,
    correlation_id: Optional[str] = None
) -> Optional[ParsedResult]:
    """Load a log file and parse it.

    Args:
        path: JSON array or JSON-lines file of harness log records
        config: Optional parser configuration
        correlation_id: Optional correlation ID for request tracking

    Returns:
        ParsedResult, or None when no testcase declaration is present
    """
    logger = get_logger(__name__, correlation_id, "parse_log_file")
    records = load_log_records(path)
    logger.info(
        "Log file loaded",
        extra={"path": str(path), "record_count": len(records)}
    )
    return parse_logs(records, config, correlation_id)
