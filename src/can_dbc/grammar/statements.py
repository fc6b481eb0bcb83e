"""
Handlers for the structural DBC statements.

VERSION, BU_, BO_, SG_, BO_TX_BU_, VAL_, VAL_TABLE_ and SIG_VALTYPE_.
Each handler takes the decoder context and the statement text (trimmed,
trailing semicolon removed) and returns an Outcome.
"""

import re
from typing import Optional

from ..core.enums import ByteOrder, MuxRole, ValueEncoding
from ..core.errors import DatabaseError
from ..core.models import MuxSelector
from .context import APPLIED, PLACEHOLDER_MESSAGE_NAME, DecoderContext, Outcome, skipped
from .strings import is_quoted, tokenize, unquote

LAYOUT_PATTERN = re.compile(r"^(\d+)\|(\d+)@([01])([+-])$")
MUX_PATTERN = re.compile(r"^m(\d+)(?:-(\d+))?$")


def _keyword_body(statement: str) -> str:
    """Statement text after its leading keyword."""
    parts = statement.split(None, 1)
    return parts[1] if len(parts) > 1 else ""


def decode_version(ctx: DecoderContext, statement: str) -> Outcome:
    body = _keyword_body(statement).strip()
    if not is_quoted(body):
        return skipped("VERSION without quoted text")
    ctx.db.version = unquote(body)
    return APPLIED


def decode_nodes(ctx: DecoderContext, statement: str) -> Outcome:
    """BU_: NODE_A NODE_B ..."""
    _, sep, names = statement.partition(":")
    if not sep:
        return skipped("BU_ without colon")
    for name in names.split():
        if ctx.db.node_key_by_name(name) is None:
            ctx.ensure_node(name)
    return APPLIED


def decode_message(ctx: DecoderContext, statement: str) -> Outcome:
    """BO_ <id> <name>: <dlc> <sender>"""
    ctx.current_message = None
    ctx.in_placeholder = False

    head, sep, tail = _keyword_body(statement).partition(":")
    head_tokens = head.split()
    tail_tokens = tail.split()
    if not sep or len(head_tokens) != 2 or not tail_tokens:
        return skipped("malformed BO_")
    try:
        message_id = int(head_tokens[0])
        dlc = int(tail_tokens[0])
    except ValueError:
        return skipped("non-numeric BO_ id or length")
    name = head_tokens[1]

    if name == PLACEHOLDER_MESSAGE_NAME:
        ctx.in_placeholder = True
        return APPLIED

    try:
        key = ctx.db.add_message(name, message_id, dlc)
    except DatabaseError as e:
        return skipped(str(e))
    ctx.current_message = key

    if len(tail_tokens) > 1:
        node_key = ctx.ensure_node(tail_tokens[1])
        if node_key is not None:
            ctx.db.add_sender_relation(key, node_key)
    return APPLIED


def _parse_mux_tag(tag: Optional[str]) -> tuple[MuxRole, Optional[MuxSelector]]:
    if tag is None:
        return MuxRole.NONE, None
    if tag == "M":
        return MuxRole.MULTIPLEXOR, None
    match = MUX_PATTERN.match(tag)
    if match is None:
        return MuxRole.NONE, None
    low = int(match.group(1))
    high = int(match.group(2)) if match.group(2) else low
    return MuxRole.MULTIPLEXED, MuxSelector(min(low, high), max(low, high))


def _take_group(tokens: list[str], start: int, closing: str) -> tuple[Optional[str], int]:
    """Re-join tokens from start until one ends with the closing delimiter."""
    parts = []
    index = start
    while index < len(tokens):
        parts.append(tokens[index])
        index += 1
        if tokens[index - 1].endswith(closing):
            return "".join(parts), index
    return None, index


def _parse_pair(group: Optional[str], opening: str, closing: str, separator: str) -> Optional[tuple[float, float]]:
    if group is None or not group.startswith(opening) or not group.endswith(closing):
        return None
    values = group[1:-1].split(separator)
    if len(values) != 2:
        return None
    try:
        return float(values[0]), float(values[1])
    except ValueError:
        return None


def decode_signal(ctx: DecoderContext, statement: str) -> Outcome:
    """
    SG_ <name> [M|mN]: <start>|<len>@<order><sign> (<factor>,<offset>) [<min>|<max>] "<unit>" <receivers>

    The signal binds to the message of the most recent BO_. Parenthesized and
    bracketed groups may be split by whitespace.
    """
    head, sep, tail = _keyword_body(statement).partition(":")
    head_tokens = head.split()
    if not sep or not 1 <= len(head_tokens) <= 2:
        return skipped("malformed SG_ header")
    name = head_tokens[0]
    mux_role, selector = _parse_mux_tag(head_tokens[1] if len(head_tokens) == 2 else None)

    tokens = tokenize(tail)
    if not tokens:
        return skipped("SG_ without layout")
    layout = LAYOUT_PATTERN.match(tokens[0])
    if layout is None:
        return skipped(f"bad SG_ layout '{tokens[0]}'")
    bit_start, bit_length = int(layout.group(1)), int(layout.group(2))
    byte_order = ByteOrder(layout.group(3))
    encoding = ValueEncoding.SIGNED if layout.group(4) == "-" else ValueEncoding.UNSIGNED

    scaling_group, index = _take_group(tokens, 1, ")")
    scaling = _parse_pair(scaling_group, "(", ")", ",")
    limits_group, index = _take_group(tokens, index, "]")
    limits = _parse_pair(limits_group, "[", "]", "|")
    if scaling is None or limits is None:
        return skipped("bad SG_ scaling or limits")

    unit = ""
    receiver_parts = []
    for token in tokens[index:]:
        if token.startswith('"') and not unit and is_quoted(token):
            unit = unquote(token)
        else:
            receiver_parts.append(token)
    receivers = [part.strip() for part in ",".join(receiver_parts).split(",") if part.strip()]

    if ctx.current_message is None and not ctx.in_placeholder:
        return skipped(f"signal '{name}' outside of a message")

    try:
        key = ctx.db.add_signal(
            name,
            byte_order=byte_order,
            encoding=encoding,
            factor=scaling[0],
            offset=scaling[1],
            minimum=limits[0],
            maximum=limits[1],
            unit=unit,
            bit_start=bit_start,
            bit_length=bit_length,
        )
    except DatabaseError as e:
        return skipped(str(e))

    signal = ctx.db.get_signal(key)
    if ctx.in_placeholder:
        signal.mux_role = mux_role
        signal.mux_selector = selector
    else:
        try:
            ctx.db.add_msg_sig_relation(key, ctx.current_message, mux_role, selector)
        except DatabaseError as e:
            ctx.db.delete_signal(key)
            return skipped(str(e))

    for receiver in receivers:
        node_key = ctx.ensure_node(receiver)
        if node_key is not None:
            ctx.db.add_sig_receiver_node(key, node_key)
    return APPLIED


def decode_transmitters(ctx: DecoderContext, statement: str) -> Outcome:
    """BO_TX_BU_ <id> : <node>,<node>"""
    head, sep, tail = _keyword_body(statement).partition(":")
    try:
        message_id = int(head.strip())
    except ValueError:
        return skipped("non-numeric BO_TX_BU_ id")
    message_key = ctx.db.message_key_by_id(message_id)
    if not sep or message_key is None:
        return skipped(f"BO_TX_BU_ for unknown message {message_id}")
    for name in tail.replace(",", " ").split():
        node_key = ctx.ensure_node(name)
        if node_key is not None:
            ctx.db.add_sender_relation(message_key, node_key)
    return APPLIED


def _parse_descriptions(tokens: list[str]) -> Optional[dict[int, str]]:
    if len(tokens) % 2:
        return None
    entries = {}
    for value_token, text_token in zip(tokens[::2], tokens[1::2]):
        if not is_quoted(text_token):
            return None
        try:
            entries[int(value_token)] = unquote(text_token)
        except ValueError:
            return None
    return entries


def decode_value_descriptions(ctx: DecoderContext, statement: str) -> Outcome:
    """VAL_ <id> <signal> <value> "<text>" ..."""
    tokens = tokenize(_keyword_body(statement))
    if len(tokens) < 2:
        return skipped("malformed VAL_")
    try:
        message_id = int(tokens[0])
    except ValueError:
        return skipped("VAL_ for environment variable")
    entries = _parse_descriptions(tokens[2:])
    if entries is None:
        return skipped("malformed VAL_ entries")
    key = ctx.resolve_signal(message_id, tokens[1])
    if key is None:
        return skipped(f"VAL_ for unknown signal {tokens[1]}")
    ctx.db.set_value_table(key, entries)
    return APPLIED


def decode_value_table(ctx: DecoderContext, statement: str) -> Outcome:
    """VAL_TABLE_ <name> <value> "<text>" ..."""
    tokens = tokenize(_keyword_body(statement))
    if not tokens:
        return skipped("VAL_TABLE_ without name")
    entries = _parse_descriptions(tokens[1:])
    if entries is None:
        return skipped("malformed VAL_TABLE_ entries")
    ctx.db.value_tables[tokens[0]] = entries
    return APPLIED


def decode_signal_value_type(ctx: DecoderContext, statement: str) -> Outcome:
    """SIG_VALTYPE_ <id> <signal> : <0|1|2>"""
    tokens = _keyword_body(statement).replace(":", " ").split()
    if len(tokens) != 3:
        return skipped("malformed SIG_VALTYPE_")
    try:
        message_id = int(tokens[0])
        kind = int(tokens[2])
    except ValueError:
        return skipped("non-numeric SIG_VALTYPE_ field")
    key = ctx.resolve_signal(message_id, tokens[1])
    if key is None:
        return skipped(f"SIG_VALTYPE_ for unknown signal {tokens[1]}")

    if kind == 1:
        encoding = ValueEncoding.IEEE_FLOAT
    elif kind == 2:
        encoding = ValueEncoding.IEEE_DOUBLE
    elif kind == 0:
        return APPLIED
    else:
        return skipped(f"unknown SIG_VALTYPE_ {kind}")
    try:
        ctx.db.set_signal_encoding(key, encoding)
    except DatabaseError as e:
        return skipped(str(e))
    return APPLIED
