"""Shared utilities for sync log parsing.

This module provides the data structures, configuration objects, result types,
and logging helpers used across all processing layers.
"""

from .config import (
    DEFAULT_PROJECT,
    DEFAULT_REVISION,
    UNKNOWN,
    ConfigError,
    ConfigValidationError,
    MarkerConfig,
    MetricsConfig,
    ParserConfig,
    SentinelConfig,
    XmlCaptureConfig,
)
from .logging import (
    CorrelationLogger,
    get_logger,
)
from .records import (
    LogLevel,
    LogRecord,
    parse_timestamp,
)
from .result import (
    DiagnosticEntry,
    DiagnosticSeverity,
    EntityContext,
    EntityDetails,
    ParsedResult,
    ParseStatistics,
    SyncStatus,
    WidgetMetrics,
)

__all__ = [
    "DEFAULT_PROJECT",
    "DEFAULT_REVISION",
    "UNKNOWN",
    "ConfigError",
    "ConfigValidationError",
    "MarkerConfig",
    "MetricsConfig",
    "ParserConfig",
    "SentinelConfig",
    "XmlCaptureConfig",
    "CorrelationLogger",
    "get_logger",
    "LogLevel",
    "LogRecord",
    "parse_timestamp",
    "DiagnosticEntry",
    "DiagnosticSeverity",
    "EntityContext",
    "EntityDetails",
    "ParsedResult",
    "ParseStatistics",
    "SyncStatus",
    "WidgetMetrics",
]
