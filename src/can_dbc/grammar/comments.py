"""
CM_ handlers.

    CM_ "<text>";                 network comment
    CM_ BU_ <node> "<text>";
    CM_ BO_ <id> "<text>";
    CM_ SG_ <id> <signal> "<text>";

The quoted text may span several physical lines; the decoder joins them
before the statement reaches this module.
"""

from .context import APPLIED, DecoderContext, Outcome, skipped
from .strings import split_first_quoted


def decode_comment(ctx: DecoderContext, statement: str) -> Outcome:
    parts = split_first_quoted(statement[len("CM_"):])
    if parts is None:
        return skipped("CM_ without quoted text")
    before, text, after = parts
    if after.strip():
        return skipped("trailing text after CM_ comment")

    target = before.split()
    if not target:
        ctx.db.comment = text
        return APPLIED

    kind = target[0].upper()
    db = ctx.db
    if kind == "BU_" and len(target) == 2:
        node = db.get_node_by_name(target[1])
        if node is None:
            return skipped(f"CM_ for unknown node {target[1]}")
        node.comment = text
        return APPLIED

    if kind in ("BO_", "SG_"):
        try:
            message_id = int(target[1]) if len(target) > 1 else None
        except ValueError:
            message_id = None
        if message_id is None:
            return skipped(f"CM_ {kind} without numeric id")

        if kind == "BO_" and len(target) == 2:
            message = db.get_message_by_id(message_id)
            if message is None:
                return skipped(f"CM_ for unknown message {message_id}")
            message.comment = text
            return APPLIED

        if kind == "SG_" and len(target) == 3:
            signal = db.get_signal(ctx.resolve_signal(message_id, target[2]))
            if signal is None:
                return skipped(f"CM_ for unknown signal {target[2]}")
            signal.comment = text
            return APPLIED

    return skipped(f"unsupported CM_ target {' '.join(target)}")
