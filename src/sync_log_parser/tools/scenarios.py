"""Harness log scenario generation for sync log parsing.

Provides a builder that writes realistic harness log records (testcase banner,
sync markers, XML blocks, entity creation, finish markers) with monotonically
increasing ids and timestamps, plus the named scenarios used by the test suite
and the command-line demo.
"""

import random
from datetime import datetime, timedelta
from itertools import zip_longest
from typing import Callable, Dict, Iterable, List, Optional

from sync_log_parser.shared.config import MarkerConfig
from sync_log_parser.shared.logging import get_logger
from sync_log_parser.shared.records import LogLevel, LogRecord, parse_timestamp

DEFAULT_START = "2024-02-01T10:00:00.000Z"
DEFAULT_TESTCASE_ID = "cee6cd52"
DEFAULT_HOST = "jenkins-prod-01"

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>'

_RUNNER_CLASS = "com.opshub.automation.TestRunner"
_SYNC_CLASS = "com.opshub.automation.SyncEngine"
_TRANSFORM_CLASS = "com.opshub.automation.TransformationEngine"
_XML_CLASS = "com.opshub.automation.XMLParser"
_CREATOR_CLASS = "com.opshub.automation.EntityCreator"


def format_timestamp(moment: datetime) -> str:
    """Format a UTC datetime the way the harness does (millisecond precision, ``Z``)."""
    return moment.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def source_document(*lines: str) -> str:
    """Wrap payload lines into a source XML document."""
    return "\n".join([XML_HEADER, "<SourceXML>", *lines, "</SourceXML>"])


def transformed_document(*lines: str) -> str:
    """Wrap payload lines into a transformed XML document."""
    return "\n".join([XML_HEADER, "<rootelement>", *lines, "</rootelement>"])


class ScenarioBuilder:
    """Writes harness log records in chronological order.

    Every record gets the next id and a timestamp ``step_ms`` after the previous
    one, so any scenario can be shuffled and re-sorted without ambiguity.
    """

    def __init__(
        self,
        start: str = DEFAULT_START,
        step_ms: int = 1000,
        testcase_id: str = DEFAULT_TESTCASE_ID,
        host: str = DEFAULT_HOST,
        markers: Optional[MarkerConfig] = None
    ) -> None:
        self.markers = markers or MarkerConfig()
        self.testcase_id = testcase_id
        self.host = host
        self._clock = parse_timestamp(start)
        self._step = timedelta(milliseconds=step_ms)
        self._records: List[LogRecord] = []

    @staticmethod
    def key_token(key: str) -> str:
        return f"[EI:{key}]"

    def pause(self, seconds: float) -> "ScenarioBuilder":
        """Advance the clock without writing a record."""
        self._clock += timedelta(seconds=seconds)
        return self

    def log(
        self,
        message: str,
        level: LogLevel = LogLevel.INFO,
        log_class: str = _SYNC_CLASS
    ) -> LogRecord:
        """Append one record and advance the clock."""
        record = LogRecord(
            id=len(self._records) + 1,
            timestamp=format_timestamp(self._clock),
            level=level,
            message=message,
            log_class=log_class,
            host=self.host,
            testcase_id=self.testcase_id,
        )
        self._records.append(record)
        self._clock += self._step
        return record

    def testcase_started(
        self,
        source_system: str,
        source_entity: str,
        target_system: str,
        target_entity: str,
        source_project: str = "DEFAULT",
        target_project: str = "PRODUCTION"
    ) -> "ScenarioBuilder":
        self.log(
            f"{self.markers.testcase_started} --->> "
            f"Source: {source_system}, {source_entity}; "
            f"Target: {target_system}, {target_entity}; "
            f"Project: {source_project}, {target_project}",
            log_class=_RUNNER_CLASS,
        )
        return self

    def start_sync(self, key: str, entity_id: str, revision: int) -> "ScenarioBuilder":
        self.log(
            f"{self.markers.start_sync} of Entity Id {entity_id} with revision "
            f"{revision} {self.key_token(key)}"
        )
        return self

    def about_to_transform(self, key: str) -> "ScenarioBuilder":
        self.log(
            f"{self.markers.about_to_transform[0]} New Values {self.key_token(key)}",
            log_class=_TRANSFORM_CLASS,
        )
        return self

    def xml_block_messages(self, key: str, kind: str, document: str) -> List[str]:
        """Messages of an XML block logged one line per record.

        Args:
            key: Correlation key
            kind: ``"source"`` or ``"transformed"``
            document: XML document text
        """
        start, end = self._block_markers(kind)
        token = self.key_token(key)
        return (
            [f"{start} {token}"]
            + [f"{token} {line}" for line in document.splitlines()]
            + [f"{end} {token}"]
        )

    def xml_block(
        self,
        key: str,
        kind: str,
        document: str,
        split_lines: bool = False,
        terminated: bool = True
    ) -> "ScenarioBuilder":
        """Log an XML block either as one multi-line record or line by line.

        Args:
            key: Correlation key
            kind: ``"source"`` or ``"transformed"``
            document: XML document text
            split_lines: Write one record per line instead of a single record
            terminated: Write the end marker
        """
        if split_lines:
            messages = self.xml_block_messages(key, kind, document)
            if not terminated:
                messages = messages[:-1]
            for message in messages:
                self.log(message, LogLevel.DEBUG, _XML_CLASS)
            return self

        start, end = self._block_markers(kind)
        lines = [f"{start} {self.key_token(key)}", document]
        if terminated:
            lines.append(end)
        self.log("\n".join(lines), LogLevel.DEBUG, _XML_CLASS)
        return self

    def entity_created(self, key: str, internal_id: str, display_id: str) -> "ScenarioBuilder":
        self.log(
            f"{self.markers.entity_created} internalId={internal_id}, "
            f"displayId={display_id} {self.key_token(key)}",
            log_class=_CREATOR_CLASS,
        )
        return self

    def finish_sync(
        self,
        key: str,
        entity_id: str,
        revision: int,
        status: str = "SUCCESS"
    ) -> "ScenarioBuilder":
        self.log(
            f"{self.markers.finish_sync} of Entity Id {entity_id} with revision "
            f"{revision} {self.key_token(key)} - Status: {status}"
        )
        return self

    def error(self, message: str, key: Optional[str] = None) -> "ScenarioBuilder":
        suffix = f" {self.key_token(key)}" if key else ""
        self.log(f"ERROR: {message}{suffix}", LogLevel.ERROR)
        return self

    def build(self) -> List[LogRecord]:
        return list(self._records)

    def _block_markers(self, kind: str):
        if kind == "source":
            return self.markers.source_xml_start, self.markers.source_xml_end
        if kind == "transformed":
            return self.markers.transformed_xml_start, self.markers.transformed_xml_end
        raise ValueError(f"Unknown XML block kind: {kind!r}")


def complete_sync_logs() -> List[LogRecord]:
    """One successful sync of Salesforce account ACC-001 into a NetSuite customer."""
    key = "ACC-001-REV-1"
    return (
        ScenarioBuilder(step_ms=5000)
        .testcase_started("Salesforce", "Account", "NetSuite", "Customer")
        .start_sync(key, "ACC-001", 1)
        .about_to_transform(key)
        .xml_block(key, "source", source_document(
            "  <Account>",
            "    <Id>ACC-001</Id>",
            "    <Name>Acme Corporation</Name>",
            "    <Industry>Technology</Industry>",
            "    <AnnualRevenue>5000000</AnnualRevenue>",
            "  </Account>",
        ))
        .xml_block(key, "transformed", transformed_document(
            "  <Customer>",
            "    <EntityID>CUST-001</EntityID>",
            "    <CompanyName>Acme Corporation</CompanyName>",
            "    <Industry>Technology</Industry>",
            "    <Status>ACTIVE</Status>",
            "  </Customer>",
        ))
        .entity_created(key, "CUST-001", "CUST-ACME-001")
        .finish_sync(key, "ACC-001", 1)
        .build()
    )


def interleaved_sync_logs() -> List[LogRecord]:
    """Two contacts synced concurrently, their XML lines interleaved record by record."""
    first, second = "CON-001-REV-1", "CON-002-REV-1"
    builder = ScenarioBuilder()
    builder.testcase_started("Salesforce", "Contact", "NetSuite", "Contact")
    builder.start_sync(first, "CON-001", 1)
    builder.start_sync(second, "CON-002", 1)

    for kind, john, jane in (
        (
            "source",
            source_document(
                "  <Contact>",
                "    <Id>CON-001</Id>",
                "    <FirstName>John</FirstName>",
                "    <LastName>Smith</LastName>",
                "  </Contact>",
            ),
            source_document(
                "  <Contact>",
                "    <Id>CON-002</Id>",
                "    <FirstName>Jane</FirstName>",
                "    <LastName>Doe</LastName>",
                "  </Contact>",
            ),
        ),
        (
            "transformed",
            transformed_document(
                "  <Contact>",
                "    <EntityID>CONTACT-001</EntityID>",
                "    <FirstName>John</FirstName>",
                "  </Contact>",
            ),
            transformed_document(
                "  <Contact>",
                "    <EntityID>CONTACT-002</EntityID>",
                "    <FirstName>Jane</FirstName>",
                "  </Contact>",
            ),
        ),
    ):
        pairs = zip_longest(
            builder.xml_block_messages(first, kind, john),
            builder.xml_block_messages(second, kind, jane),
        )
        for john_line, jane_line in pairs:
            for message in (john_line, jane_line):
                if message is not None:
                    builder.log(message, LogLevel.DEBUG, _XML_CLASS)

    builder.entity_created(first, "CONTACT-001", "CONTACT-JOHN-001")
    builder.finish_sync(first, "CON-001", 1)
    builder.entity_created(second, "CONTACT-002", "CONTACT-JANE-002")
    builder.finish_sync(second, "CON-002", 1)
    return builder.build()


def _failed_revision(builder: ScenarioBuilder, key: str, entity_id: str, revision: int) -> None:
    builder.start_sync(key, entity_id, revision)
    builder.about_to_transform(key)
    builder.xml_block(key, "source", source_document(
        "  <Account>",
        f"    <Id>{entity_id}</Id>",
        "    <Name></Name>",
        "  </Account>",
    ))
    builder.xml_block(key, "transformed", transformed_document(
        "  <error>",
        "    <code>VALIDATION_ERROR</code>",
        "    <message>Required field CompanyName is missing</message>",
        "  </error>",
    ))
    builder.error(f"Validation failed for entity {entity_id}: CompanyName is required", key)
    builder.finish_sync(key, entity_id, revision, status="FAILED")


def failed_sync_logs() -> List[LogRecord]:
    """One sync whose transformation is rejected with VALIDATION_ERROR."""
    builder = ScenarioBuilder(step_ms=5000)
    builder.testcase_started("Salesforce", "Account", "NetSuite", "Customer")
    _failed_revision(builder, "ACC-002-REV-1", "ACC-002", 1)
    return builder.build()


def incomplete_sync_logs() -> List[LogRecord]:
    """A sync cut off after its source XML: no transformed block, no finish marker."""
    key = "ACC-003-REV-1"
    return (
        ScenarioBuilder(step_ms=5000)
        .testcase_started("Salesforce", "Account", "NetSuite", "Customer")
        .start_sync(key, "ACC-003", 1)
        .about_to_transform(key)
        .xml_block(key, "source", source_document(
            "  <Account>",
            "    <Id>ACC-003</Id>",
            "    <Name>Initech</Name>",
            "  </Account>",
        ))
        .build()
    )


def retry_sync_logs() -> List[LogRecord]:
    """Revision 1 of ACC-004 fails validation, revision 2 succeeds."""
    builder = ScenarioBuilder(step_ms=5000)
    builder.testcase_started("Salesforce", "Account", "NetSuite", "Customer")
    _failed_revision(builder, "ACC-004-REV-1", "ACC-004", 1)

    key = "ACC-004-REV-2"
    builder.pause(60)
    builder.start_sync(key, "ACC-004", 2)
    builder.about_to_transform(key)
    builder.xml_block(key, "source", source_document(
        "  <Account>",
        "    <Id>ACC-004</Id>",
        "    <Name>Globex</Name>",
        "  </Account>",
    ))
    builder.xml_block(key, "transformed", transformed_document(
        "  <Customer>",
        "    <EntityID>CUST-004</EntityID>",
        "    <CompanyName>Globex</CompanyName>",
        "  </Customer>",
    ))
    builder.entity_created(key, "CUST-004", "CUST-GLOBEX-004")
    builder.finish_sync(key, "ACC-004", 2)
    return builder.build()


SCENARIOS: Dict[str, Callable[[], List[LogRecord]]] = {
    "complete": complete_sync_logs,
    "interleaved": interleaved_sync_logs,
    "failed": failed_sync_logs,
    "incomplete": incomplete_sync_logs,
    "retry": retry_sync_logs,
}


def list_scenarios() -> List[str]:
    return sorted(SCENARIOS)


def get_scenario(name: str) -> List[LogRecord]:
    """Build a named scenario.

    Raises:
        ValueError: If the scenario name is unknown
    """
    try:
        factory = SCENARIOS[name]
    except KeyError:
        raise ValueError(
            f"Unknown scenario: {name!r} (available: {', '.join(list_scenarios())})"
        ) from None
    records = factory()
    get_logger(__name__, None, "scenarios").debug(
        "Scenario generated", extra={"scenario": name, "record_count": len(records)}
    )
    return records


def shuffled(records: Iterable[LogRecord], seed: Optional[int] = None) -> List[LogRecord]:
    """Return the records in a random order (reproducible with a seed)."""
    result = list(records)
    random.Random(seed).shuffle(result)
    return result


def without_finish_markers(
    records: Iterable[LogRecord],
    markers: Optional[MarkerConfig] = None
) -> List[LogRecord]:
    """Drop every finish marker, simulating a log stream truncated mid-sync."""
    finish = (markers or MarkerConfig()).finish_sync
    return [record for record in records if finish not in record.message]
