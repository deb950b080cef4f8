"""Tests for single-pass sync correlation."""

import pytest

from sync_log_parser.correlation import SyncCorrelator
from sync_log_parser.shared.config import ParserConfig
from sync_log_parser.shared.records import LogRecord
from sync_log_parser.shared.result import DiagnosticSeverity
from sync_log_parser.tools.scenarios import (
    ScenarioBuilder,
    complete_sync_logs,
    interleaved_sync_logs,
    source_document,
    transformed_document,
)


def _run(records, config=None):
    return SyncCorrelator(config).run(records)


def _messages(diagnostics, severity=None):
    return [d.message for d in diagnostics if severity is None or d.severity is severity]


class TestDispatch:
    """Test record routing through the dispatch table."""

    def test_rule_order(self):
        names = [rule.name for rule in SyncCorrelator().rules]
        assert names == [
            "start_sync",
            "about_to_transform",
            "xml_marker",
            "entity_created",
            "finish_sync",
            "xml_body",
        ]

    def test_complete_sync(self):
        outcome = _run(complete_sync_logs())

        assert len(outcome.syncs) == 1
        sync = outcome.syncs[0]
        assert sync.source_entity_id == "ACC-001"
        assert sync.target_entity_id == "CUST-ACME-001"
        assert sync.internal_id == "CUST-001"
        assert sync.revision_id == 1
        assert sync.start_sync_time == "2024-02-01T10:00:05.000Z"
        assert sync.finished_sync_time == "2024-02-01T10:00:30.000Z"
        assert sync.source_event_xml.startswith("<?xml")
        assert sync.source_event_xml.endswith("</SourceXML>")
        assert "<Account><Id>ACC-001</Id>" in sync.source_event_xml
        assert "<Customer>" in sync.transformed_event_xml
        assert sync.transformed_event_xml.endswith("</rootelement>")

    def test_complete_sync_statistics(self):
        statistics = _run(complete_sync_logs()).statistics

        assert statistics.records_processed == 7
        assert statistics.records_ignored == 1
        assert statistics.syncs_started == 1
        assert statistics.syncs_finished == 1
        assert statistics.syncs_incomplete == 0
        assert statistics.xml_blocks_captured == 2
        assert statistics.xml_blocks_empty == 0

    def test_correlation_key_removed_from_payload(self):
        sync = _run(interleaved_sync_logs()).syncs[0]
        assert "[EI:" not in sync.source_event_xml
        assert "[EI:" not in sync.transformed_event_xml

    def test_records_without_key_are_ignored(self):
        builder = ScenarioBuilder()
        builder.log("Start synchronizing of Entity Id ACC-001 with revision 1")
        builder.log("Source XML START")
        outcome = _run(builder.build())

        assert outcome.syncs == ()
        assert outcome.statistics.records_ignored == 2
        assert "Start marker without correlation key" in _messages(
            outcome.diagnostics, DiagnosticSeverity.WARNING
        )

    def test_payload_line_for_idle_sync_is_ignored(self):
        key = "ACC-001-REV-1"
        builder = ScenarioBuilder().start_sync(key, "ACC-001", 1)
        builder.log(f"[EI:{key}] <Stray/>")
        builder.finish_sync(key, "ACC-001", 1)
        outcome = _run(builder.build())

        assert outcome.syncs[0].source_event_xml == ""
        assert outcome.statistics.records_ignored == 1

    def test_free_text_keys(self):
        records = [
            LogRecord(1, "2024-02-01T10:00:05Z", "INFO",
                      "Start synchronizing of Entity Id ACC-001 with revision 3 EI ACC-001-REV-3"),
            LogRecord(2, "2024-02-01T10:00:10Z", "DEBUG",
                      "Source XML START EI ACC-001-REV-3\n"
                      '<?xml version="1.0"?>\n<Account><Id>ACC-001</Id></Account>\n'
                      "Source XML END"),
            LogRecord(3, "2024-02-01T10:00:30Z", "INFO",
                      "Finished synchronizing of Entity Id ACC-001 with revision 3 "
                      "EI ACC-001-REV-3 - Status: SUCCESS"),
        ]
        sync = _run(records, ParserConfig.lenient()).syncs[0]

        assert sync.revision_id == 3
        assert sync.source_event_xml == '<?xml version="1.0"?><Account><Id>ACC-001</Id></Account>'
        assert sync.completed

    def test_unparsable_revision_defaults_to_zero(self):
        records = [
            LogRecord(1, "2024-02-01T10:00:05Z", "INFO",
                      "Start synchronizing of Entity Id ACC-001 with revision next [EI:k]"),
        ]
        assert _run(records).syncs[0].revision_id == 0

    def test_missing_entity_id_uses_sentinel(self):
        records = [LogRecord(1, "2024-02-01T10:00:05Z", "INFO", "Start synchronizing [EI:k]")]
        sync = _run(records).syncs[0]
        assert sync.source_entity_id == "UNKNOWN"
        assert sync.target_entity_id == "UNKNOWN"


class TestXmlCollection:
    """Test XML block capture through the state machine."""

    def test_line_per_record_capture(self):
        key = "ACC-001-REV-1"
        builder = ScenarioBuilder().start_sync(key, "ACC-001", 1)
        builder.xml_block(key, "source", source_document("<Id>ACC-001</Id>"), split_lines=True)
        builder.finish_sync(key, "ACC-001", 1)
        sync = _run(builder.build()).syncs[0]

        assert sync.source_event_xml == (
            '<?xml version="1.0" encoding="UTF-8"?><SourceXML><Id>ACC-001</Id></SourceXML>'
        )

    def test_missing_closing_tag_yields_empty_xml(self):
        key = "ACC-001-REV-1"
        builder = ScenarioBuilder().start_sync(key, "ACC-001", 1)
        builder.xml_block(key, "source", '<?xml version="1.0"?>\n<Account/>')
        builder.finish_sync(key, "ACC-001", 1)
        outcome = _run(builder.build())

        assert outcome.syncs[0].source_event_xml == ""
        assert outcome.statistics.xml_blocks_empty == 1
        assert "No source XML captured: closing tag </SourceXML> not found" in _messages(
            outcome.diagnostics, DiagnosticSeverity.WARNING
        )

    def test_missing_declaration_diagnostic(self):
        key = "ACC-001-REV-1"
        builder = ScenarioBuilder().start_sync(key, "ACC-001", 1)
        builder.xml_block(key, "transformed", "<rootelement/></rootelement>")
        outcome = _run(builder.build())

        assert "No transformed XML captured: no XML declaration" in _messages(
            outcome.diagnostics
        )

    def test_transformed_start_closes_open_source_block(self):
        key = "ACC-001-REV-1"
        builder = ScenarioBuilder().start_sync(key, "ACC-001", 1)
        builder.xml_block(key, "source", source_document("<Id>1</Id>"), terminated=False)
        builder.xml_block(key, "transformed", transformed_document("<Id>2</Id>"))
        builder.finish_sync(key, "ACC-001", 1)
        sync = _run(builder.build()).syncs[0]

        assert sync.source_event_xml.endswith("<Id>1</Id></SourceXML>")
        assert sync.transformed_event_xml.endswith("<Id>2</Id></rootelement>")

    def test_restarted_source_block_discards_earlier_lines(self):
        key = "ACC-001-REV-1"
        builder = ScenarioBuilder().start_sync(key, "ACC-001", 1)
        builder.log(f"Source XML START [EI:{key}]")
        builder.log(f"[EI:{key}] <Stale/>")
        builder.xml_block(key, "source", source_document("<Fresh/>"))
        sync = _run(builder.build()).syncs[0]

        assert "<Fresh/>" in sync.source_event_xml
        assert "<Stale/>" not in sync.source_event_xml

    def test_unexpected_end_marker(self):
        key = "ACC-001-REV-1"
        builder = ScenarioBuilder().start_sync(key, "ACC-001", 1)
        builder.log(f"Source XML END [EI:{key}]")
        outcome = _run(builder.build())

        assert "Ignored SOURCE_END while in NONE" in _messages(
            outcome.diagnostics, DiagnosticSeverity.DEBUG
        )

    def test_open_block_kept_at_finish(self):
        key = "ACC-001-REV-1"
        builder = ScenarioBuilder().start_sync(key, "ACC-001", 1)
        builder.xml_block(key, "transformed", transformed_document("<Id>2</Id>"), terminated=False)
        builder.finish_sync(key, "ACC-001", 1)
        sync = _run(builder.build()).syncs[0]

        assert sync.completed
        assert sync.transformed_event_xml.endswith("</rootelement>")

    def test_unterminated_fragment_kept_raw(self):
        key = "ACC-001-REV-1"
        builder = ScenarioBuilder().start_sync(key, "ACC-001", 1)
        builder.xml_block(key, "source", '<?xml version="1.0"?>\n<SourceXML>\n<Acc', terminated=False)
        outcome = _run(builder.build())

        assert outcome.syncs[0].source_event_xml == '<?xml version="1.0"?>\n<SourceXML>\n<Acc'
        assert "Unterminated source XML kept as raw text" in _messages(outcome.diagnostics)

    def test_unterminated_fragment_dropped_when_disabled(self):
        key = "ACC-001-REV-1"
        builder = ScenarioBuilder().start_sync(key, "ACC-001", 1)
        builder.xml_block(key, "source", '<?xml version="1.0"?>\n<SourceXML>', terminated=False)
        config = ParserConfig().override(xml__keep_unterminated_payload=False)

        assert _run(builder.build(), config).syncs[0].source_event_xml == ""


class TestLifecycle:
    """Test sync start, finish and finalization."""

    def test_interleaved_syncs_do_not_mix(self):
        first, second = _run(interleaved_sync_logs()).syncs

        assert first.source_entity_id == "CON-001"
        assert second.source_entity_id == "CON-002"
        assert "John" in first.source_event_xml
        assert "John" in first.transformed_event_xml
        assert "Jane" not in first.source_event_xml
        assert "John" not in second.source_event_xml
        assert "John" not in second.transformed_event_xml
        assert "Jane" in second.transformed_event_xml

    def test_end_of_stream_finalization(self):
        key = "ACC-003-REV-1"
        builder = ScenarioBuilder().start_sync(key, "ACC-003", 1)
        builder.xml_block(key, "source", source_document("<Id>ACC-003</Id>"))
        outcome = _run(builder.build())

        sync = outcome.syncs[0]
        assert sync.finished_sync_time == sync.start_sync_time
        assert not sync.completed
        assert "<Id>ACC-003</Id>" in sync.source_event_xml
        assert outcome.statistics.syncs_incomplete == 1
        info = [d for d in outcome.diagnostics if d.severity is DiagnosticSeverity.INFO]
        assert info[0].correlation_id == key
        assert info[0].timestamp == sync.start_sync_time

    def test_duplicate_start_finalizes_previous_attempt(self):
        key = "ACC-001-REV-1"
        builder = ScenarioBuilder().start_sync(key, "ACC-001", 1)
        builder.xml_block(key, "source", source_document("<Attempt>1</Attempt>"))
        builder.start_sync(key, "ACC-001", 1)
        builder.xml_block(key, "source", source_document("<Attempt>2</Attempt>"))
        builder.finish_sync(key, "ACC-001", 1)
        outcome = _run(builder.build())

        earlier, later = outcome.syncs
        assert not earlier.completed
        assert "<Attempt>1</Attempt>" in earlier.source_event_xml
        assert later.completed
        assert "<Attempt>2</Attempt>" in later.source_event_xml
        assert outcome.statistics.syncs_started == 2
        assert any("restarted" in message for message in _messages(outcome.diagnostics))

    def test_orphan_markers(self):
        builder = ScenarioBuilder()
        builder.log("Source XML START [EI:ghost]")
        builder.log("Created entity information: displayId=X [EI:ghost]")
        builder.log("Finished synchronizing of Entity Id X [EI:ghost]")
        outcome = _run(builder.build())

        assert outcome.syncs == ()
        assert outcome.statistics.records_ignored == 3
        assert "Finish marker for unknown sync ghost" in _messages(
            outcome.diagnostics, DiagnosticSeverity.WARNING
        )
        assert "XML marker for unknown sync ghost" in _messages(
            outcome.diagnostics, DiagnosticSeverity.WARNING
        )

    def test_xml_block_without_key_is_reported(self):
        key = "ACC-001-REV-1"
        builder = ScenarioBuilder().start_sync(key, "ACC-001", 1)
        document = source_document("<Id>ACC-001</Id>")
        builder.log(f"Source XML START\n{document}\nSource XML END")
        builder.finish_sync(key, "ACC-001", 1)
        outcome = _run(builder.build())

        assert outcome.syncs[0].source_event_xml == ""
        assert outcome.statistics.records_ignored == 1
        assert "XML marker without correlation key" in _messages(
            outcome.diagnostics, DiagnosticSeverity.WARNING
        )

    def test_entity_created_without_ids(self):
        key = "k"
        builder = ScenarioBuilder().start_sync(key, "ACC-001", 1)
        builder.log(f"Created entity information: nothing useful [EI:{key}]")
        outcome = _run(builder.build())

        assert outcome.syncs[0].target_entity_id == "UNKNOWN"
        assert "Entity creation message carries no identifiers" in _messages(outcome.diagnostics)

    def test_output_sorted_by_start_time(self):
        builder = ScenarioBuilder()
        builder.start_sync("a", "ACC-001", 1)
        builder.start_sync("b", "ACC-002", 1)
        builder.finish_sync("b", "ACC-002", 1)
        builder.finish_sync("a", "ACC-001", 1)

        assert [s.source_entity_id for s in _run(builder.build()).syncs] == ["ACC-001", "ACC-002"]

    def test_correlator_is_single_use(self):
        correlator = SyncCorrelator()
        correlator.run([])
        with pytest.raises(RuntimeError, match="cannot be reused"):
            correlator.run([])
