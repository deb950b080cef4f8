"""Named pattern matchers for harness log messages.

Each matcher inspects one message and returns a typed extraction result, or None
when the message does not carry that piece of information. Matchers never raise;
a field that cannot be extracted is left as None for the caller to replace with a
sentinel.

Correlation keys come in two forms. ``[EI:<key>]`` is canonical; the free-text
``EI <key>`` token is accepted when no bracketed key is present.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sync_log_parser.correlation.states import XmlEvent
from sync_log_parser.shared.config import MarkerConfig

_BRACKETED_KEY = re.compile(r"\[EI\s*:\s*([^\]\s]+)\s*\]")
_FREE_TEXT_KEY = re.compile(r"\bEI(?::\s*|\s+)([A-Za-z0-9][\w.\-]*)")

_ENTITY_ID = re.compile(r"Entity Id\s*:?\s*([^\s,]+)", re.IGNORECASE)
_REVISION = re.compile(r"(?:Revision Id\s*:\s*|with revision\s+)(\d+)", re.IGNORECASE)
_INTERNAL_ID = re.compile(r"internal\s*id\s*[:=]\s*([^\s,]+)", re.IGNORECASE)
_DISPLAY_ID = re.compile(r"display\s*id\s*[:=]\s*([^\s,]+)", re.IGNORECASE)


@dataclass(frozen=True)
class KeyMatch:
    """Correlation key and the span of the token that carried it."""

    key: str
    start: int
    end: int
    bracketed: bool = True


@dataclass(frozen=True)
class SyncMarkerMatch:
    """Entity id and revision carried by a start or finish marker."""

    entity_id: Optional[str]
    revision_id: Optional[int]


@dataclass(frozen=True)
class CreatedEntityMatch:
    """Identifiers assigned by the target system."""

    internal_id: Optional[str]
    display_id: Optional[str]


def match_correlation_key(message: str) -> Optional[KeyMatch]:
    """Extract the EI correlation key from a message."""
    match = _BRACKETED_KEY.search(message)
    if match:
        return KeyMatch(match.group(1), match.start(), match.end(), bracketed=True)
    match = _FREE_TEXT_KEY.search(message)
    if match:
        return KeyMatch(match.group(1), match.start(), match.end(), bracketed=False)
    return None


def strip_correlation_key(message: str, key_match: Optional[KeyMatch]) -> str:
    """Remove the correlation key token from a message."""
    if key_match is None:
        return message
    return message[:key_match.start] + message[key_match.end:]


def match_sync_marker(message: str) -> SyncMarkerMatch:
    """Extract entity id and revision from a start/finish synchronizing message."""
    entity = _ENTITY_ID.search(message)
    revision = _REVISION.search(message)
    return SyncMarkerMatch(
        entity_id=entity.group(1) if entity else None,
        revision_id=int(revision.group(1)) if revision else None,
    )


def match_created_entity(message: str) -> CreatedEntityMatch:
    """Extract internal and display ids from an entity creation message."""
    internal = _INTERNAL_ID.search(message)
    display = _DISPLAY_ID.search(message)
    return CreatedEntityMatch(
        internal_id=internal.group(1) if internal else None,
        display_id=display.group(1) if display else None,
    )


class MessageMatchers:
    """Marker predicates and XML record splitting bound to a marker configuration."""

    def __init__(self, markers: Optional[MarkerConfig] = None) -> None:
        self.markers = markers or MarkerConfig()
        self._xml_events: Tuple[Tuple[str, XmlEvent], ...] = (
            (self.markers.source_xml_start, XmlEvent.SOURCE_START),
            (self.markers.source_xml_end, XmlEvent.SOURCE_END),
            (self.markers.transformed_xml_start, XmlEvent.TRANSFORMED_START),
            (self.markers.transformed_xml_end, XmlEvent.TRANSFORMED_END),
        )

    def is_start_sync(self, message: str) -> bool:
        return self.markers.start_sync in message

    def is_about_to_transform(self, message: str) -> bool:
        return any(marker in message for marker in self.markers.about_to_transform)

    def has_xml_marker(self, message: str) -> bool:
        return any(marker in message for marker, _ in self._xml_events)

    def is_entity_created(self, message: str) -> bool:
        return self.markers.entity_created in message

    def is_finish_sync(self, message: str) -> bool:
        return self.markers.finish_sync in message

    def split_xml_record(self, message: str) -> List[Tuple[XmlEvent, Optional[str]]]:
        """Split a record carrying XML markers into ordered events.

        Harnesses either log one marker per record, or a whole block (start
        marker, payload lines, end marker) as a single multi-line message. Both
        become the same event sequence: markers in textual order, with every
        non-blank text segment between them turned into a BODY event.

        Args:
            message: Record message with the correlation key already removed

        Returns:
            List of (event, text) pairs; text is None for marker events
        """
        found: List[Tuple[int, int, XmlEvent]] = []
        for marker, event in self._xml_events:
            start = message.find(marker)
            while start != -1:
                found.append((start, start + len(marker), event))
                start = message.find(marker, start + len(marker))
        found.sort(key=lambda item: item[0])

        events: List[Tuple[XmlEvent, Optional[str]]] = []
        cursor = 0
        for start, end, event in found:
            self._append_body(events, message[cursor:start])
            events.append((event, None))
            cursor = end
        self._append_body(events, message[cursor:])
        return events

    @staticmethod
    def _append_body(events: List[Tuple[XmlEvent, Optional[str]]], segment: str) -> None:
        segment = segment.strip()
        if segment:
            events.append((XmlEvent.BODY, segment))
