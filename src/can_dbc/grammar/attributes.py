"""
Attribute statement handlers.

Declarations (BA_DEF_, BA_DEF_REL_), defaults (BA_DEF_DEF_,
BA_DEF_DEF_REL_) and assignments (BA_, BA_REL_). Unknown attribute names,
unsupported object kinds and values that do not parse for the declared
kind drop the statement.
"""

from typing import Optional, Union

from ..core.attributes import AttributeKind, AttributeScope, RelationKind, parse_int
from ..core.errors import DatabaseError
from .context import APPLIED, DecoderContext, Outcome, skipped
from .strings import quoted_strings, split_first_quoted, tokenize, unquote

ENTITY_SCOPES = {scope.value: scope for scope in AttributeScope if scope.value}
RELATION_KINDS = {kind.value: kind for kind in RelationKind}


def _body(statement: str) -> str:
    parts = statement.split(None, 1)
    return parts[1] if len(parts) > 1 else ""


def _parse_type(text: str) -> Optional[tuple[AttributeKind, Optional[float], Optional[float], list[str]]]:
    """Parse 'INT 0 100', 'ENUM "a","b"', 'STRING' ... into its parts."""
    parts = text.split(None, 1)
    if not parts:
        return None
    try:
        kind = AttributeKind(parts[0].upper())
    except ValueError:
        return None
    rest = parts[1] if len(parts) > 1 else ""

    if kind is AttributeKind.STRING:
        return kind, None, None, []
    if kind is AttributeKind.ENUM:
        return kind, None, None, quoted_strings(rest)

    bounds = rest.replace(",", " ").split()
    if len(bounds) != 2:
        return None
    try:
        if kind is AttributeKind.FLOAT:
            return kind, float(bounds[0]), float(bounds[1]), []
        return kind, parse_int(bounds[0]), parse_int(bounds[1]), []
    except ValueError:
        return None


def _define(ctx: DecoderContext, scope: Union[AttributeScope, RelationKind], rest: str) -> Outcome:
    parts = split_first_quoted(rest)
    if parts is None:
        return skipped("attribute definition without quoted name")
    _, name, type_text = parts
    parsed = _parse_type(type_text.strip())
    if parsed is None:
        return skipped(f"bad type for attribute '{name}'")
    kind, minimum, maximum, options = parsed
    try:
        ctx.db.define_attribute(name, scope, kind, minimum, maximum, options)
    except DatabaseError as e:
        return skipped(str(e))
    return APPLIED


def decode_definition(ctx: DecoderContext, statement: str) -> Outcome:
    """BA_DEF_ [BU_|BO_|SG_] "<name>" <type>"""
    body = _body(statement)
    first = body.split(None, 1)
    if first and first[0] in ENTITY_SCOPES:
        return _define(ctx, ENTITY_SCOPES[first[0]], first[1] if len(first) > 1 else "")
    if first and not first[0].startswith('"'):
        return skipped(f"unsupported BA_DEF_ object {first[0]}")
    return _define(ctx, AttributeScope.DATABASE, body)


def decode_relation_definition(ctx: DecoderContext, statement: str) -> Outcome:
    """BA_DEF_REL_ BU_SG_REL_|BU_BO_REL_ "<name>" <type>"""
    first = _body(statement).split(None, 1)
    if len(first) != 2 or first[0] not in RELATION_KINDS:
        return skipped("unsupported BA_DEF_REL_ relation")
    return _define(ctx, RELATION_KINDS[first[0]], first[1])


def _apply_default(ctx: DecoderContext, statement: str, relation: bool) -> Outcome:
    parts = split_first_quoted(_body(statement))
    if parts is None:
        return skipped("attribute default without quoted name")
    _, name, value_text = parts
    value_text = unquote(value_text.strip())
    specs = ctx.db.find_attribute_specs(name, relation=relation)
    if not specs:
        return skipped(f"default for undeclared attribute '{name}'")
    try:
        for spec in specs:
            value = spec.parse_default(value_text)
            if relation:
                ctx.db.set_relation_attribute_default(name, value, spec.scope)
            else:
                ctx.db.set_attribute_default(name, value, spec.scope)
    except DatabaseError as e:
        return skipped(str(e))
    return APPLIED


def decode_default(ctx: DecoderContext, statement: str) -> Outcome:
    """BA_DEF_DEF_ "<name>" <value>"""
    return _apply_default(ctx, statement, relation=False)


def decode_relation_default(ctx: DecoderContext, statement: str) -> Outcome:
    """BA_DEF_DEF_REL_ "<name>" <value>"""
    return _apply_default(ctx, statement, relation=True)


def decode_assignment(ctx: DecoderContext, statement: str) -> Outcome:
    """BA_ "<name>" [BU_ <node>|BO_ <id>|SG_ <id> <signal>] <value>"""
    parts = split_first_quoted(_body(statement))
    if parts is None:
        return skipped("BA_ without quoted name")
    _, name, rest = parts
    tokens = tokenize(rest)
    if not tokens:
        return skipped(f"BA_ '{name}' without value")

    db = ctx.db
    scope = ENTITY_SCOPES.get(tokens[0], AttributeScope.DATABASE)
    key = None
    try:
        if scope is AttributeScope.NODE and len(tokens) == 3:
            key = db.node_key_by_name(tokens[1])
        elif scope is AttributeScope.MESSAGE and len(tokens) == 3:
            key = db.message_key_by_id(int(tokens[1]))
        elif scope is AttributeScope.SIGNAL and len(tokens) == 4:
            key = ctx.resolve_signal(int(tokens[1]), tokens[2])
        elif scope is not AttributeScope.DATABASE or len(tokens) != 1:
            return skipped(f"malformed BA_ '{name}'")
    except ValueError:
        return skipped(f"non-numeric id in BA_ '{name}'")
    if scope is not AttributeScope.DATABASE and key is None:
        return skipped(f"BA_ '{name}' for unknown object")

    spec = db.get_attribute_spec(name, scope)
    if spec is None:
        return skipped(f"BA_ for undeclared attribute '{name}'")
    try:
        db.set_attribute(scope, key, name, spec.parse_value(unquote(tokens[-1])))
    except DatabaseError as e:
        return skipped(str(e))
    return APPLIED


def decode_relation_assignment(ctx: DecoderContext, statement: str) -> Outcome:
    """
    BA_REL_ "<name>" BU_SG_REL_ <node> SG_ <id> <signal> <value>
    BA_REL_ "<name>" BU_BO_REL_ <node> [BO_] <id> <value>
    """
    parts = split_first_quoted(_body(statement))
    if parts is None:
        return skipped("BA_REL_ without quoted name")
    _, name, rest = parts
    tokens = tokenize(rest)
    if len(tokens) < 4 or tokens[0] not in RELATION_KINDS:
        return skipped(f"malformed BA_REL_ '{name}'")

    db = ctx.db
    kind = RELATION_KINDS[tokens[0]]
    node_key = db.node_key_by_name(tokens[1])
    target = tokens[2:-1]
    try:
        if kind is RelationKind.NODE_SIGNAL:
            if len(target) != 3 or target[0] != "SG_":
                return skipped(f"malformed BA_REL_ '{name}'")
            other_key = ctx.resolve_signal(int(target[1]), target[2])
        else:
            if target and target[0] == "BO_":
                target = target[1:]
            if len(target) != 1:
                return skipped(f"malformed BA_REL_ '{name}'")
            other_key = db.message_key_by_id(int(target[0]))
    except ValueError:
        return skipped(f"non-numeric id in BA_REL_ '{name}'")
    if node_key is None or other_key is None:
        return skipped(f"BA_REL_ '{name}' for unknown objects")

    spec = db.get_attribute_spec(name, kind)
    if spec is None:
        return skipped(f"BA_REL_ for undeclared attribute '{name}'")
    try:
        db.set_relation_attribute(kind, node_key, other_key, name, spec.parse_value(unquote(tokens[-1])))
    except DatabaseError as e:
        return skipped(str(e))
    return APPLIED
