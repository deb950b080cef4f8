"""Public parsing API.

Exposes the progressive-disclosure entry points, the result assembler, and the
optional integration adapters.
"""

from .adapters import (
    AdapterMetadata,
    AdapterType,
    ConversionResult,
    IntegrationAdapter,
    LxmlAdapter,
    PandasAdapter,
    get_adapter,
    list_available_adapters,
    register_adapter,
)
from .assembler import (
    ResultAssembler,
    build_entity_details,
    calculate_widget_metrics,
)
from .parser import (
    SyncLogParser,
    load_log_records,
    parse_log_file,
    parse_logs,
    sort_records,
)

__all__ = [
    "AdapterMetadata",
    "AdapterType",
    "ConversionResult",
    "IntegrationAdapter",
    "LxmlAdapter",
    "PandasAdapter",
    "get_adapter",
    "list_available_adapters",
    "register_adapter",
    "ResultAssembler",
    "build_entity_details",
    "calculate_widget_metrics",
    "SyncLogParser",
    "load_log_records",
    "parse_log_file",
    "parse_logs",
    "sort_records",
]
