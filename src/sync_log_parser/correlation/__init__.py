"""EI-correlated sync reconstruction.

Provides the message matchers, the XML collection state machine, and the
single-pass correlator that turns sorted log records into sync statuses.
"""

from .correlator import (
    ActiveSync,
    CorrelationOutcome,
    DispatchRule,
    SyncCorrelator,
)
from .matchers import (
    CreatedEntityMatch,
    KeyMatch,
    MessageMatchers,
    SyncMarkerMatch,
    match_correlation_key,
    match_created_entity,
    match_sync_marker,
    strip_correlation_key,
)
from .states import (
    TRANSITIONS,
    Transition,
    XmlAction,
    XmlEvent,
    XmlState,
    next_transition,
)

__all__ = [
    "ActiveSync",
    "CorrelationOutcome",
    "DispatchRule",
    "SyncCorrelator",
    "CreatedEntityMatch",
    "KeyMatch",
    "MessageMatchers",
    "SyncMarkerMatch",
    "match_correlation_key",
    "match_created_entity",
    "match_sync_marker",
    "strip_correlation_key",
    "TRANSITIONS",
    "Transition",
    "XmlAction",
    "XmlEvent",
    "XmlState",
    "next_transition",
]
