"""Tests for integration adapters framework."""

from typing import Optional

import pytest

from sync_log_parser.api.adapters import (
    AdapterMetadata,
    AdapterRegistry,
    AdapterType,
    ConversionResult,
    IntegrationAdapter,
    LxmlAdapter,
    PandasAdapter,
    get_adapter,
    list_available_adapters,
)
from sync_log_parser.api.parser import parse_logs
from sync_log_parser.shared import DiagnosticSeverity, ParsedResult
from sync_log_parser.tools.scenarios import (
    complete_sync_logs,
    incomplete_sync_logs,
    retry_sync_logs,
)


class TestAdapter(IntegrationAdapter):
    """Test adapter implementation for testing."""

    def __init__(self, correlation_id: Optional[str] = None, available: bool = True):
        super().__init__(correlation_id)
        self._available = available

    @property
    def metadata(self) -> AdapterMetadata:
        return AdapterMetadata(
            name="test-adapter",
            version="1.0.0",
            adapter_type=AdapterType.DATA_FRAME,
            target_library="test-lib",
            supported_versions=["1.0.0"],
            description="Test adapter for unit testing"
        )

    def is_available(self) -> bool:
        return self._available

    def to_target(self, parsed_result: ParsedResult) -> ConversionResult:
        if not parsed_result.sync_status_list:
            return self._create_error_result("no syncs", parsed_result)
        return ConversionResult(
            success=True,
            converted_data=len(parsed_result.sync_status_list),
            original_data=parsed_result,
            conversion_time_ms=0.0,
        )


class UnavailableAdapter(TestAdapter):
    """Adapter whose library is never installed."""

    def __init__(self, correlation_id: Optional[str] = None):
        super().__init__(correlation_id, available=False)

    @property
    def metadata(self) -> AdapterMetadata:
        return AdapterMetadata(
            name="unavailable",
            version="1.0.0",
            adapter_type=AdapterType.XML_LIBRARY,
            target_library="missing-lib",
            supported_versions=[],
            description="Never available"
        )


class TestAdapterRegistry:
    """Test adapter registration and lookup."""

    def test_register_and_get(self):
        registry = AdapterRegistry()
        registry.register(TestAdapter)

        adapter = registry.get_adapter("test-adapter", "corr-1")
        assert isinstance(adapter, TestAdapter)
        assert adapter.correlation_id == "corr-1"

    def test_unknown_adapter(self):
        assert AdapterRegistry().get_adapter("nope") is None

    def test_unavailable_adapter_hidden(self):
        registry = AdapterRegistry()
        registry.register(TestAdapter)
        registry.register(UnavailableAdapter)

        assert registry.get_adapter("unavailable") is None
        assert [m.name for m in registry.list_available_adapters()] == ["test-adapter"]

    def test_error_result(self):
        result = parse_logs(complete_sync_logs())
        empty = ParsedResult(
            entity_context=result.entity_context,
            entity_details=result.entity_details,
            sync_status_list=(),
            widget_metrics=result.widget_metrics,
        )
        conversion = TestAdapter().to_target(empty)

        assert not conversion.success
        assert conversion.errors == ["no syncs"]
        assert conversion.diagnostics[0].severity is DiagnosticSeverity.ERROR

    def test_global_registry_knows_builtin_adapters(self):
        available = {metadata.name for metadata in list_available_adapters()}
        for name, adapter_class in (("pandas", PandasAdapter), ("lxml", LxmlAdapter)):
            if adapter_class().is_available():
                assert name in available
                assert isinstance(get_adapter(name), adapter_class)
            else:
                assert get_adapter(name) is None


class TestPandasAdapter:
    """Test DataFrame conversion."""

    def setup_method(self):
        try:
            import pandas  # noqa: F401
        except ImportError:
            pytest.skip("pandas not available")
        self.adapter = PandasAdapter()

    def test_metadata(self):
        assert self.adapter.metadata.adapter_type is AdapterType.DATA_FRAME
        assert self.adapter.is_available()

    def test_sync_history_frame(self):
        conversion = self.adapter.to_target(parse_logs(retry_sync_logs()))

        assert conversion.success
        df = conversion.converted_data
        assert len(df) == 2
        assert list(df["revision_id"]) == [1, 2]
        assert list(df["completed"]) == [True, True]
        assert conversion.metadata["row_count"] == 2
        assert (df["duration_ms"] > 0).all()

    def test_incomplete_sync_has_zero_duration(self):
        df = self.adapter.to_target(parse_logs(incomplete_sync_logs())).converted_data

        assert list(df["completed"]) == [False]
        assert df["duration_ms"].iloc[0] == 0


class TestLxmlAdapter:
    """Test payload parsing into element trees."""

    def setup_method(self):
        try:
            import lxml.etree  # noqa: F401
        except ImportError:
            pytest.skip("lxml not available")
        self.adapter = LxmlAdapter()

    def test_parse_payloads(self):
        conversion = self.adapter.to_target(parse_logs(complete_sync_logs()))

        assert conversion.success
        entry = conversion.converted_data[0]
        assert entry["source"].tag == "SourceXML"
        assert entry["source"].find("Account/Id").text == "ACC-001"
        assert entry["transformed"].tag == "rootelement"
        assert conversion.metadata["document_count"] == 2
        assert conversion.warnings == []

    def test_missing_payload_maps_to_none(self):
        conversion = self.adapter.to_target(parse_logs(incomplete_sync_logs()))

        entry = conversion.converted_data[0]
        assert entry["source"] is not None
        assert entry["transformed"] is None
        assert conversion.metadata["document_count"] == 1
