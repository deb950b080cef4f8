"""XML collection sub-state machine of an active sync.

Every active sync is in exactly one XmlState. Events are derived from the XML
markers (and payload lines) found in the log stream; the transition table below
is the single definition of which event moves a sync into which state and what
happens to its payload buffers on the way.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, Optional, Tuple


class XmlState(Enum):
    """XML collection state of an active sync."""

    NONE = auto()
    AWAIT_SOURCE_START = auto()         # Reserved, never entered
    COLLECTING_SOURCE = auto()
    AWAIT_TRANSFORMED_START = auto()    # Reserved, never entered
    COLLECTING_TRANSFORMED = auto()

    @property
    def collecting(self) -> bool:
        return self in (XmlState.COLLECTING_SOURCE, XmlState.COLLECTING_TRANSFORMED)


class XmlEvent(Enum):
    """Events driving the XML collection state machine."""

    SOURCE_START = auto()
    SOURCE_END = auto()
    TRANSFORMED_START = auto()
    TRANSFORMED_END = auto()
    BODY = auto()


class XmlAction(Enum):
    """Side effects applied to an active sync's payload buffers."""

    RESET_SOURCE = auto()
    APPEND_SOURCE = auto()
    CLOSE_SOURCE = auto()             # Sanitize after an explicit end marker
    ABANDON_SOURCE = auto()           # Sanitize a block left open by another start
    RESET_TRANSFORMED = auto()
    APPEND_TRANSFORMED = auto()
    CLOSE_TRANSFORMED = auto()
    ABANDON_TRANSFORMED = auto()


@dataclass(frozen=True)
class Transition:
    """Target state and ordered side effects of one transition."""

    new_state: XmlState
    actions: Tuple[XmlAction, ...] = ()


_S = XmlState
_E = XmlEvent
_A = XmlAction

TRANSITIONS: Dict[Tuple[XmlState, XmlEvent], Transition] = {
    (_S.NONE, _E.SOURCE_START): Transition(_S.COLLECTING_SOURCE, (_A.RESET_SOURCE,)),
    (_S.NONE, _E.TRANSFORMED_START): Transition(
        _S.COLLECTING_TRANSFORMED, (_A.RESET_TRANSFORMED,)
    ),
    (_S.COLLECTING_SOURCE, _E.BODY): Transition(_S.COLLECTING_SOURCE, (_A.APPEND_SOURCE,)),
    (_S.COLLECTING_SOURCE, _E.SOURCE_END): Transition(_S.NONE, (_A.CLOSE_SOURCE,)),
    (_S.COLLECTING_SOURCE, _E.SOURCE_START): Transition(
        _S.COLLECTING_SOURCE, (_A.RESET_SOURCE,)
    ),
    (_S.COLLECTING_SOURCE, _E.TRANSFORMED_START): Transition(
        _S.COLLECTING_TRANSFORMED, (_A.ABANDON_SOURCE, _A.RESET_TRANSFORMED)
    ),
    (_S.COLLECTING_TRANSFORMED, _E.BODY): Transition(
        _S.COLLECTING_TRANSFORMED, (_A.APPEND_TRANSFORMED,)
    ),
    (_S.COLLECTING_TRANSFORMED, _E.TRANSFORMED_END): Transition(
        _S.NONE, (_A.CLOSE_TRANSFORMED,)
    ),
    (_S.COLLECTING_TRANSFORMED, _E.TRANSFORMED_START): Transition(
        _S.COLLECTING_TRANSFORMED, (_A.RESET_TRANSFORMED,)
    ),
    (_S.COLLECTING_TRANSFORMED, _E.SOURCE_START): Transition(
        _S.COLLECTING_SOURCE, (_A.ABANDON_TRANSFORMED, _A.RESET_SOURCE)
    ),
}

# Action that closes whatever block a state leaves open at finish or end of stream
OPEN_BLOCK_CLOSERS: Dict[XmlState, XmlAction] = {
    _S.COLLECTING_SOURCE: _A.ABANDON_SOURCE,
    _S.COLLECTING_TRANSFORMED: _A.ABANDON_TRANSFORMED,
}


def next_transition(state: XmlState, event: XmlEvent) -> Optional[Transition]:
    """Look up the transition for ``event`` in ``state``.

    Returns:
        The transition, or None when the event does not apply in that state
    """
    return TRANSITIONS.get((state, event))
