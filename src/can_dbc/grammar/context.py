"""
Decoder state and handler outcomes.

Handlers receive the DecoderContext of the running parse and return an
Outcome; they never raise for malformed input.
"""

from dataclasses import dataclass, field
from typing import Optional

from ..core.arena import MessageKey, NodeKey, SignalKey
from ..core.database import CanDatabase
from ..core.errors import DatabaseError

# Signals that belong to no message are written inside this message
PLACEHOLDER_MESSAGE_NAME = "VECTOR__INDEPENDENT_SIG_MSG"
PLACEHOLDER_MESSAGE_ID = 0xC0000000
PLACEHOLDER_NODE = "Vector__XXX"


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result of one statement: applied, or dropped with a reason."""

    applied: bool
    reason: str = ""


APPLIED = Outcome(True)


def skipped(reason: str) -> Outcome:
    return Outcome(False, reason)


@dataclass(slots=True)
class ParseStats:
    """Counters for one parse, with the reason of every dropped statement."""

    lines: int = 0
    statements: int = 0
    applied: int = 0
    skipped: int = 0
    unknown: int = 0
    elapsed_seconds: float = 0.0
    dropped: list[tuple[int, str]] = field(default_factory=list)

    def record(self, line_number: int, outcome: Outcome) -> None:
        self.statements += 1
        if outcome.applied:
            self.applied += 1
        else:
            self.skipped += 1
            self.dropped.append((line_number, outcome.reason))


@dataclass
class DecoderContext:
    """
    Mutable state shared by the statement handlers of one parse.

    current_message is the message of the most recent BO_ statement; SG_
    statements attach to it. in_placeholder is set while the signals of
    the placeholder message are read; those stay unbound.
    """

    db: CanDatabase
    current_message: Optional[MessageKey] = None
    in_placeholder: bool = False
    line_number: int = 0

    def ensure_node(self, name: str) -> Optional[NodeKey]:
        """Node key by name, creating the node on first reference."""
        if not name or name == PLACEHOLDER_NODE:
            return None
        key = self.db.node_key_by_name(name)
        if key is not None:
            return key
        try:
            return self.db.add_node(name)
        except DatabaseError:
            return None

    def resolve_signal(self, message_id: int, name: str) -> Optional[SignalKey]:
        """Signal referenced by (message id, name) in a trailing statement."""
        if message_id == PLACEHOLDER_MESSAGE_ID:
            key = self.db.signal_key_by_name(name)
            signal = self.db.get_signal(key)
            return key if signal is not None and signal.message is None else None
        message_key = self.db.message_key_by_id(message_id)
        if message_key is None:
            return None
        return self.db.find_signal(message_key, name)
