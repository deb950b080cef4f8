"""Sync Log Parser.

Reconstructs the synchronization history of an integration test from the
unordered free-text log lines its harness produced: which entity synced, when,
with what revision, and which XML payloads it carried before and after
transformation.

Progressive API Disclosure:
- Level 1: Simple functions - parse_logs(), parse_log_file()
- Level 2: Configured parser - SyncLogParser class with ParserConfig presets
- Level 3: Building blocks - SyncCorrelator, ContextExtractor, sanitize_xml()
"""

__version__ = "0.1.0"
__author__ = "Sync Log Parser Team"

# Progressive API disclosure - Level 1: Simple functions
# Progressive API disclosure - Level 2: Configured parser
from .api import SyncLogParser, load_log_records, parse_log_file, parse_logs

# Level 3: Building blocks
from .context import ContextExtractor
from .correlation import SyncCorrelator
from .sanitization import sanitize_xml

# Configuration classes for advanced usage
from .shared.config import ParserConfig

# Core result objects for all API levels
from .shared.records import LogLevel, LogRecord
from .shared.result import (
    EntityContext,
    EntityDetails,
    ParsedResult,
    SyncStatus,
    WidgetMetrics,
)

__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Level 1: Simple parsing functions (progressive disclosure entry point)
    "parse_logs",
    "parse_log_file",
    "load_log_records",

    # Level 2: Configured parser
    "SyncLogParser",
    "ParserConfig",

    # Level 3: Building blocks
    "ContextExtractor",
    "SyncCorrelator",
    "sanitize_xml",

    # Input records and result objects
    "LogLevel",
    "LogRecord",
    "EntityContext",
    "EntityDetails",
    "ParsedResult",
    "SyncStatus",
    "WidgetMetrics",
]
