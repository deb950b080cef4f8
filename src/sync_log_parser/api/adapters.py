"""Integration adapters for downstream analysis of parse results.

This module provides an adapter framework converting a ParsedResult into the
structures of popular libraries: a pandas DataFrame of the sync history and lxml
element trees of the captured payloads. Target libraries are imported lazily, so
the core parser works without them.
"""

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional, Type

from sync_log_parser.shared import (
    DiagnosticEntry,
    DiagnosticSeverity,
    ParsedResult,
    SyncStatus,
    get_logger,
)

MS_PER_SECOND = 1000

SYNC_COLUMNS = [
    "source_entity_id",
    "target_entity_id",
    "revision_id",
    "start_sync_time",
    "finished_sync_time",
    "completed",
    "source_event_xml",
    "transformed_event_xml",
]


class AdapterType(Enum):
    """Types of integration adapters."""

    XML_LIBRARY = auto()     # XML processing libraries (lxml)
    DATA_FRAME = auto()      # DataFrame libraries (pandas)


@dataclass
class AdapterMetadata:
    """Metadata about an integration adapter."""

    name: str
    version: str
    adapter_type: AdapterType
    target_library: str
    supported_versions: List[str]
    description: str


@dataclass
class ConversionResult:
    """Result of a conversion operation."""

    success: bool
    converted_data: Any
    original_data: Any
    conversion_time_ms: float
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    diagnostics: List[DiagnosticEntry] = field(default_factory=list)


class IntegrationAdapter(ABC):
    """Abstract base class for all integration adapters."""

    def __init__(self, correlation_id: Optional[str] = None) -> None:
        """Initialize the integration adapter.

        Args:
            correlation_id: Optional correlation ID for request tracking
        """
        self.correlation_id = correlation_id
        self._logger = get_logger(__name__, correlation_id, self.__class__.__name__)

    @property
    @abstractmethod
    def metadata(self) -> AdapterMetadata:
        """Get adapter metadata."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the target library is available."""

    @abstractmethod
    def to_target(self, parsed_result: ParsedResult) -> ConversionResult:
        """Convert a ParsedResult to the target format.

        Args:
            parsed_result: Result of a parse run

        Returns:
            ConversionResult containing the converted data and metadata
        """

    def _create_error_result(
        self,
        error_message: str,
        original_data: Any,
        conversion_time_ms: float = 0.0
    ) -> ConversionResult:
        """Create a ConversionResult for error conditions."""
        self._logger.warning(error_message, extra={"adapter": self.metadata.name})
        return ConversionResult(
            success=False,
            converted_data=None,
            original_data=original_data,
            conversion_time_ms=conversion_time_ms,
            errors=[error_message],
            diagnostics=[
                DiagnosticEntry(
                    severity=DiagnosticSeverity.ERROR,
                    message=error_message,
                    component=self.__class__.__name__,
                    correlation_id=self.correlation_id
                )
            ]
        )


class AdapterRegistry:
    """Registry for managing integration adapters."""

    def __init__(self) -> None:
        self._adapters: Dict[str, Type[IntegrationAdapter]] = {}
        self._lock = threading.RLock()

    def register(self, adapter_class: Type[IntegrationAdapter]) -> None:
        """Register an adapter class under its metadata name."""
        with self._lock:
            self._adapters[adapter_class().metadata.name] = adapter_class

    def get_adapter(
        self,
        adapter_name: str,
        correlation_id: Optional[str] = None
    ) -> Optional[IntegrationAdapter]:
        """Get an adapter instance by name.

        Returns:
            Adapter instance if registered and its library is installed, None otherwise
        """
        with self._lock:
            adapter_class = self._adapters.get(adapter_name)
        if adapter_class is None:
            return None
        instance = adapter_class(correlation_id)
        return instance if instance.is_available() else None

    def list_available_adapters(self) -> List[AdapterMetadata]:
        with self._lock:
            classes = list(self._adapters.values())
        instances = [adapter_class() for adapter_class in classes]
        return [instance.metadata for instance in instances if instance.is_available()]


class PandasAdapter(IntegrationAdapter):
    """Adapter converting the sync history into a pandas DataFrame."""

    @property
    def metadata(self) -> AdapterMetadata:
        return AdapterMetadata(
            name="pandas",
            version="1.0.0",
            adapter_type=AdapterType.DATA_FRAME,
            target_library="pandas",
            supported_versions=["1.5+"],
            description="One DataFrame row per sync, start and finish times parsed"
        )

    def is_available(self) -> bool:
        """Check if pandas is available."""
        try:
            import pandas  # noqa: F401
            return True
        except ImportError:
            return False

    def to_target(self, parsed_result: ParsedResult) -> ConversionResult:
        """Convert the sync history to a DataFrame.

        Columns follow SYNC_COLUMNS plus a ``duration_ms`` column computed from the
        parsed start and finish times (0 for syncs that never finished).
        """
        start_time = time.time()

        try:
            import pandas as pd

            rows = [self._sync_to_row(sync) for sync in parsed_result.sync_status_list]
            df = pd.DataFrame(rows, columns=SYNC_COLUMNS)
            df["start_sync_time"] = pd.to_datetime(df["start_sync_time"], utc=True)
            df["finished_sync_time"] = pd.to_datetime(df["finished_sync_time"], utc=True)
            df["duration_ms"] = (
                (df["finished_sync_time"] - df["start_sync_time"]).dt.total_seconds()
                * MS_PER_SECOND
            ).fillna(0)

            processing_time = (time.time() - start_time) * MS_PER_SECOND
            return ConversionResult(
                success=True,
                converted_data=df,
                original_data=parsed_result,
                conversion_time_ms=processing_time,
                metadata={
                    "dataframe_shape": df.shape,
                    "row_count": len(df),
                    "columns": list(df.columns),
                }
            )

        except Exception as e:
            processing_time = (time.time() - start_time) * MS_PER_SECOND
            return self._create_error_result(
                f"Failed to convert to pandas DataFrame: {e}",
                parsed_result,
                processing_time
            )

    @staticmethod
    def _sync_to_row(sync: SyncStatus) -> Dict[str, Any]:
        return {
            "source_entity_id": sync.source_entity_id,
            "target_entity_id": sync.target_entity_id,
            "revision_id": sync.revision_id,
            "start_sync_time": sync.start_sync_time,
            "finished_sync_time": sync.finished_sync_time,
            "completed": sync.completed,
            "source_event_xml": sync.source_event_xml,
            "transformed_event_xml": sync.transformed_event_xml,
        }


class LxmlAdapter(IntegrationAdapter):
    """Adapter parsing captured payloads into lxml element trees."""

    @property
    def metadata(self) -> AdapterMetadata:
        return AdapterMetadata(
            name="lxml",
            version="1.0.0",
            adapter_type=AdapterType.XML_LIBRARY,
            target_library="lxml",
            supported_versions=["4.0+"],
            description="Source and transformed payloads as lxml.etree elements"
        )

    def is_available(self) -> bool:
        """Check if lxml is available."""
        try:
            import lxml.etree  # noqa: F401
            return True
        except ImportError:
            return False

    def to_target(self, parsed_result: ParsedResult) -> ConversionResult:
        """Parse every captured payload.

        The converted data holds one dict per sync with ``source`` and
        ``transformed`` elements; payloads that were not captured or are not
        well-formed map to None and are reported as warnings.
        """
        start_time = time.time()

        try:
            import lxml.etree as ET

            converted: List[Dict[str, Any]] = []
            warnings: List[str] = []
            for sync in parsed_result.sync_status_list:
                entry: Dict[str, Any] = {
                    "source_entity_id": sync.source_entity_id,
                    "revision_id": sync.revision_id,
                }
                for name, payload in (
                    ("source", sync.source_event_xml),
                    ("transformed", sync.transformed_event_xml),
                ):
                    entry[name] = None
                    if not payload:
                        continue
                    try:
                        entry[name] = ET.fromstring(payload.encode("utf-8"))
                    except ET.XMLSyntaxError as e:
                        warnings.append(
                            f"{name} XML of {sync.source_entity_id} revision "
                            f"{sync.revision_id} is not well-formed: {e}"
                        )
                converted.append(entry)

            processing_time = (time.time() - start_time) * MS_PER_SECOND
            return ConversionResult(
                success=True,
                converted_data=converted,
                original_data=parsed_result,
                conversion_time_ms=processing_time,
                warnings=warnings,
                metadata={
                    "lxml_version": ET.LXML_VERSION,
                    "document_count": sum(
                        1 for entry in converted
                        for name in ("source", "transformed")
                        if entry[name] is not None
                    ),
                }
            )

        except Exception as e:
            processing_time = (time.time() - start_time) * MS_PER_SECOND
            return self._create_error_result(
                f"Failed to convert to lxml: {e}",
                parsed_result,
                processing_time
            )


# Global adapter registry instance
_adapter_registry = AdapterRegistry()
_adapter_registry.register(PandasAdapter)
_adapter_registry.register(LxmlAdapter)


def register_adapter(adapter_class: Type[IntegrationAdapter]) -> None:
    """Register an integration adapter globally."""
    _adapter_registry.register(adapter_class)


def get_adapter(
    adapter_name: str,
    correlation_id: Optional[str] = None
) -> Optional[IntegrationAdapter]:
    """Get a registered adapter instance, or None if unknown or unavailable."""
    return _adapter_registry.get_adapter(adapter_name, correlation_id)


def list_available_adapters() -> List[AdapterMetadata]:
    """List adapters whose target library is installed."""
    return _adapter_registry.list_available_adapters()
