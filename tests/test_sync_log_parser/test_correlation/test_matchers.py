"""Tests for the named message matchers."""

import pytest

from sync_log_parser.correlation.matchers import (
    CreatedEntityMatch,
    MessageMatchers,
    SyncMarkerMatch,
    match_correlation_key,
    match_created_entity,
    match_sync_marker,
    strip_correlation_key,
)
from sync_log_parser.correlation.states import XmlEvent
from sync_log_parser.shared.config import MarkerConfig


class TestCorrelationKey:
    """Test EI correlation key extraction."""

    def test_bracketed_key(self):
        match = match_correlation_key(
            "Start synchronizing of Entity Id ACC-001 with revision 1 [EI:ACC-001-REV-1]"
        )
        assert match.key == "ACC-001-REV-1"
        assert match.bracketed

    def test_bracketed_key_with_spaces(self):
        assert match_correlation_key("payload [EI : abc_1.2 ]").key == "abc_1.2"

    def test_free_text_key(self):
        match = match_correlation_key("About to tranform New Values EI ACC-001-REV-1")
        assert match.key == "ACC-001-REV-1"
        assert not match.bracketed

    def test_free_text_key_stops_at_whitespace(self):
        message = "Finished synchronizing of Entity Id ACC-001 with revision 1 EI ACC-001-REV-1 - Status: SUCCESS"
        assert match_correlation_key(message).key == "ACC-001-REV-1"

    def test_bracketed_key_preferred(self):
        assert match_correlation_key("EI other [EI:canonical]").key == "canonical"

    @pytest.mark.parametrize("message", [
        "Started testcase --->> Source: Salesforce, Account",
        "<EntityID>CUST-001</EntityID>",
        "REI value",
        "",
    ])
    def test_no_key(self, message):
        assert match_correlation_key(message) is None

    def test_strip_correlation_key(self):
        message = "[EI:CON-001-REV-1]     <FirstName>John</FirstName>"
        stripped = strip_correlation_key(message, match_correlation_key(message))
        assert stripped == "     <FirstName>John</FirstName>"

    def test_strip_without_key(self):
        assert strip_correlation_key("plain", None) == "plain"


class TestSyncMarker:
    """Test entity id and revision extraction."""

    def test_with_revision_layout(self):
        assert match_sync_marker(
            "Start synchronizing of Entity Id ACC-001 with revision 2 [EI:k]"
        ) == SyncMarkerMatch("ACC-001", 2)

    def test_labelled_layout(self):
        assert match_sync_marker(
            "Start synchronizing Entity Id : CON-9, Revision Id : 4 [EI:k]"
        ) == SyncMarkerMatch("CON-9", 4)

    def test_unparsable_revision(self):
        marker = match_sync_marker("Start synchronizing of Entity Id ACC-001 with revision latest")
        assert marker.entity_id == "ACC-001"
        assert marker.revision_id is None

    def test_nothing_found(self):
        assert match_sync_marker("Start synchronizing") == SyncMarkerMatch(None, None)


class TestCreatedEntity:
    """Test target system identifier extraction."""

    def test_key_value_layout(self):
        assert match_created_entity(
            "Created entity information: internalId=CUST-001, displayId=CUST-ACME-001 [EI:k]"
        ) == CreatedEntityMatch("CUST-001", "CUST-ACME-001")

    def test_labelled_layout(self):
        assert match_created_entity(
            "Created entity information: internal id: 1001, display id: BUG-7"
        ) == CreatedEntityMatch("1001", "BUG-7")

    def test_partial(self):
        assert match_created_entity("Created entity information: displayId=X-1") == (
            CreatedEntityMatch(None, "X-1")
        )


class TestMessageMatchers:
    """Test marker predicates and XML record splitting."""

    def setup_method(self):
        self.matchers = MessageMatchers()

    def test_predicates(self):
        m = self.matchers
        assert m.is_start_sync("Start synchronizing of Entity Id A")
        assert not m.is_start_sync("Finished synchronizing of Entity Id A")
        assert m.is_finish_sync("Finished synchronizing of Entity Id A")
        assert m.is_about_to_transform("About to tranform New Values")
        assert m.is_about_to_transform("About to transform New Values")
        assert m.is_entity_created("Created entity information: internalId=1")
        assert m.has_xml_marker("Transformed XML END")
        assert not m.has_xml_marker("<SourceXML>")

    def test_custom_markers(self):
        matchers = MessageMatchers(MarkerConfig(finish_sync="Sync done"))
        assert matchers.is_finish_sync("Sync done for ACC-001")
        assert not matchers.is_finish_sync("Finished synchronizing")

    def test_split_single_marker(self):
        assert self.matchers.split_xml_record("Source XML START ") == [
            (XmlEvent.SOURCE_START, None)
        ]

    def test_split_whole_block(self):
        message = (
            "Source XML START \n"
            '<?xml version="1.0"?>\n<SourceXML><Id>1</Id></SourceXML>\n'
            "Source XML END"
        )
        assert self.matchers.split_xml_record(message) == [
            (XmlEvent.SOURCE_START, None),
            (XmlEvent.BODY, '<?xml version="1.0"?>\n<SourceXML><Id>1</Id></SourceXML>'),
            (XmlEvent.SOURCE_END, None),
        ]

    def test_split_keeps_textual_order(self):
        message = "Transformed XML START <a/> Transformed XML END Source XML START <b/>"
        events = [event for event, _ in self.matchers.split_xml_record(message)]
        assert events == [
            XmlEvent.TRANSFORMED_START,
            XmlEvent.BODY,
            XmlEvent.TRANSFORMED_END,
            XmlEvent.SOURCE_START,
            XmlEvent.BODY,
        ]

    def test_split_repeated_marker(self):
        events = self.matchers.split_xml_record("Source XML START x Source XML START y")
        assert events == [
            (XmlEvent.SOURCE_START, None),
            (XmlEvent.BODY, "x"),
            (XmlEvent.SOURCE_START, None),
            (XmlEvent.BODY, "y"),
        ]
