"""
DBC serializer.

Writes a CanDatabase back to DBC text in the conventional section order:
VERSION, NS_, BS_, BU_, VAL_TABLE_, BO_/SG_ blocks, BO_TX_BU_, attribute
declarations, defaults and assignments (plain, then relational), CM_,
SIG_VALTYPE_ and VAL_.

Signals bound to no message are written inside the placeholder message
VECTOR__INDEPENDENT_SIG_MSG; the decoder reads them back as unbound
signals. Attribute values equal to the declared default are omitted since
the default statement restores them.
"""

from pathlib import Path
from typing import Optional

from .core.arena import NodeKey, SignalKey
from .core.attributes import AttributeScope, AttributeSpec, AttributeValue, RelationKind, format_number, quote
from .core.database import CanDatabase
from .core.enums import MuxRole, SortOrder, ValueEncoding
from .core.errors import InvalidExtension, WriteError
from .core.models import Signal
from .grammar.context import PLACEHOLDER_MESSAGE_ID, PLACEHOLDER_MESSAGE_NAME, PLACEHOLDER_NODE
from .utils.logging_config import get_logger

logger = get_logger("writer")

NS_KEYWORDS = (
    "NS_DESC_",
    "CM_",
    "BA_DEF_",
    "BA_",
    "VAL_",
    "CAT_DEF_",
    "CAT_",
    "FILTER",
    "BA_DEF_DEF_",
    "EV_DATA_",
    "ENVVAR_DATA_",
    "SGTYPE_",
    "SGTYPE_VAL_",
    "BA_DEF_SGTYPE_",
    "BA_SGTYPE_",
    "SIG_TYPE_REF_",
    "VAL_TABLE_",
    "SIG_GROUP_",
    "SIG_VALTYPE_",
    "SIGTYPE_VALTYPE_",
    "BO_TX_BU_",
    "BA_DEF_REL_",
    "BA_REL_",
    "BA_DEF_DEF_REL_",
    "BU_SG_REL_",
    "BU_EV_REL_",
    "BU_BO_REL_",
)

OUTPUT_ENCODING = "cp1252"


class DbcWriter:
    """Renders one database; create a new writer per dumps call."""

    def __init__(self, db: CanDatabase, order: SortOrder = SortOrder.INSERTION):
        self.db = db
        self.order = order
        self._lines: list[str] = []
        # Default text written per (relation, name); one default statement serves every scope
        self._default_text: dict[tuple[bool, str], str] = {}

    def render(self) -> str:
        self._header()
        self._value_tables()
        self._messages()
        self._transmitters()
        self._attribute_definitions()
        self._attribute_defaults()
        self._attribute_values()
        self._comments()
        self._value_types()
        self._value_descriptions()
        return "\n".join(self._lines) + "\n"

    # -- helpers -----------------------------------------------------------

    def _emit(self, line: str = "") -> None:
        self._lines.append(line)

    def _node_name(self, key: NodeKey) -> Optional[str]:
        node = self.db.get_node(key)
        return node.name if node is not None else None

    def _signal_ref(self, signal: Signal) -> str:
        """'<message id> <signal name>' as used by trailing statements."""
        message = self.db.get_message(signal.message)
        message_id = message.message_id if message is not None else PLACEHOLDER_MESSAGE_ID
        return f"{message_id} {signal.name}"

    def _all_signals(self) -> list[Signal]:
        """Bound signals message by message, then unbound ones."""
        result = []
        for message_key, _ in self.db.iter_messages(self.order):
            result.extend(signal for _, signal in self.db.iter_message_signals(message_key))
        result.extend(signal for _, signal in self.db.unbound_signals())
        return result

    # -- sections ----------------------------------------------------------

    def _header(self) -> None:
        self._emit(f"VERSION {quote(self.db.version)}")
        self._emit()
        self._emit("NS_ :")
        for keyword in NS_KEYWORDS:
            self._emit(f"\t{keyword}")
        self._emit()
        self._emit("BS_:")
        self._emit()
        names = " ".join(node.name for _, node in self.db.iter_nodes(self.order))
        self._emit(f"BU_: {names}".rstrip())
        self._emit()

    def _value_tables(self) -> None:
        for name, entries in self.db.value_tables.items():
            self._emit(f"VAL_TABLE_ {name}{_descriptions(entries)} ;")
        if self.db.value_tables:
            self._emit()

    def _messages(self) -> None:
        unbound = self.db.unbound_signals()
        if unbound:
            self._emit(f"BO_ {PLACEHOLDER_MESSAGE_ID} {PLACEHOLDER_MESSAGE_NAME}: 0 {PLACEHOLDER_NODE}")
            for _, signal in unbound:
                self._emit(self._signal_line(signal))
            self._emit()

        for message_key, message in self.db.iter_messages(self.order):
            senders = [self._node_name(key) for key in message.sender_nodes]
            sender = next((name for name in senders if name), PLACEHOLDER_NODE)
            self._emit(f"BO_ {message.message_id} {message.name}: {message.byte_length} {sender}")
            for _, signal in self.db.iter_message_signals(message_key):
                self._emit(self._signal_line(signal))
            self._emit()

    def _signal_line(self, signal: Signal) -> str:
        tag = ""
        if signal.mux_role is MuxRole.MULTIPLEXOR:
            tag = " M"
        elif signal.mux_role is MuxRole.MULTIPLEXED and signal.mux_selector is not None:
            tag = f" m{signal.mux_selector}"
        sign = "-" if signal.encoding is ValueEncoding.SIGNED else "+"
        receivers = ",".join(name for name in map(self._node_name, signal.receiver_nodes) if name)
        return (
            f" SG_ {signal.name}{tag} : {signal.bit_start}|{signal.bit_length}@{signal.byte_order.value}{sign}"
            f" ({format_number(float(signal.factor))},{format_number(float(signal.offset))})"
            f" [{format_number(float(signal.minimum))}|{format_number(float(signal.maximum))}]"
            f" {quote(signal.unit)} {receivers or PLACEHOLDER_NODE}"
        )

    def _transmitters(self) -> None:
        wrote = False
        for _, message in self.db.iter_messages(self.order):
            names = [name for name in map(self._node_name, message.sender_nodes) if name]
            if len(names) > 1:
                self._emit(f"BO_TX_BU_ {message.message_id} : {','.join(names)};")
                wrote = True
        if wrote:
            self._emit()

    def _specs(self, relation: bool) -> list[AttributeSpec]:
        scopes = RelationKind if relation else AttributeScope
        return [spec for scope in scopes for spec in self.db.attribute_specs[scope].values()]

    def _attribute_definitions(self) -> None:
        for spec in self._specs(relation=False):
            scope = f"{spec.scope.value} " if spec.scope.value else ""
            self._emit(f"BA_DEF_ {scope}{quote(spec.name)} {spec.definition_text()};")
        for spec in self._specs(relation=True):
            self._emit(f"BA_DEF_REL_ {spec.scope.value} {quote(spec.name)} {spec.definition_text()};")

    def _attribute_defaults(self) -> None:
        for relation, keyword in ((False, "BA_DEF_DEF_"), (True, "BA_DEF_DEF_REL_")):
            for spec in self._specs(relation):
                text = spec.default_to_text()
                written = self._default_text.get((relation, spec.name))
                if written is not None:
                    if text != written:
                        logger.warning(
                            f"Attribute {spec.name} has a different default for {spec.scope.name}; "
                            f"values relying on it are written explicitly"
                        )
                    continue
                if text is None:
                    continue
                self._default_text[(relation, spec.name)] = text
                self._emit(f"{keyword} {quote(spec.name)} {text};")

    def _restores(self, spec: AttributeSpec, value: AttributeValue, relation: bool = False) -> bool:
        """Whether reading the written default statement gives this value back."""
        if spec.default is None or value != spec.default:
            return False
        return self._default_text.get((relation, spec.name)) == spec.default_to_text()

    def _value_line(self, scope: AttributeScope, attributes: dict[str, AttributeValue], target: str) -> None:
        for name, value in attributes.items():
            spec = self.db.get_attribute_spec(name, scope)
            if spec is None or self._restores(spec, value):
                continue
            self._emit(f"BA_ {quote(name)} {target}{spec.value_to_text(value)};")

    def _attribute_values(self) -> None:
        db = self.db
        self._value_line(AttributeScope.DATABASE, db.attributes, "")
        for _, node in db.iter_nodes(self.order):
            self._value_line(AttributeScope.NODE, node.attributes, f"BU_ {node.name} ")
        for _, message in db.iter_messages(self.order):
            self._value_line(AttributeScope.MESSAGE, message.attributes, f"BO_ {message.message_id} ")
        for signal in self._all_signals():
            self._value_line(AttributeScope.SIGNAL, signal.attributes, f"SG_ {self._signal_ref(signal)} ")

        for node_key, other_key, name, value in db.iter_relation_values():
            node_name = self._node_name(node_key)
            if isinstance(other_key, SignalKey):
                kind = RelationKind.NODE_SIGNAL
                signal = db.get_signal(other_key)
                target = f"SG_ {self._signal_ref(signal)}" if signal is not None else None
            else:
                kind = RelationKind.NODE_MESSAGE
                message = db.get_message(other_key)  # type: ignore[arg-type]
                target = f"BO_ {message.message_id}" if message is not None else None
            spec = db.get_attribute_spec(name, kind)
            if spec is None or node_name is None or target is None or self._restores(spec, value, relation=True):
                continue
            self._emit(f"BA_REL_ {quote(name)} {kind.value} {node_name} {target} {spec.value_to_text(value)};")
        self._emit()

    def _comments(self) -> None:
        db = self.db
        if db.comment:
            self._emit(f"CM_ {quote(db.comment)};")
        for _, node in db.iter_nodes(self.order):
            if node.comment:
                self._emit(f"CM_ BU_ {node.name} {quote(node.comment)};")
        for _, message in db.iter_messages(self.order):
            if message.comment:
                self._emit(f"CM_ BO_ {message.message_id} {quote(message.comment)};")
        for signal in self._all_signals():
            if signal.comment:
                self._emit(f"CM_ SG_ {self._signal_ref(signal)} {quote(signal.comment)};")
        self._emit()

    def _value_types(self) -> None:
        for signal in self._all_signals():
            if signal.encoding is ValueEncoding.IEEE_FLOAT:
                self._emit(f"SIG_VALTYPE_ {self._signal_ref(signal)} : 1;")
            elif signal.encoding is ValueEncoding.IEEE_DOUBLE:
                self._emit(f"SIG_VALTYPE_ {self._signal_ref(signal)} : 2;")

    def _value_descriptions(self) -> None:
        for signal in self._all_signals():
            if signal.value_table:
                self._emit(f"VAL_ {self._signal_ref(signal)}{_descriptions(signal.value_table)} ;")


def _descriptions(entries: dict[int, str]) -> str:
    return "".join(f" {value} {quote(text)}" for value, text in entries.items())


def dumps(db: CanDatabase, order: SortOrder = SortOrder.INSERTION) -> str:
    """Render a database as DBC text."""
    return DbcWriter(db, order).render()


def save_to_file(file_path: Path | str, db: CanDatabase, order: SortOrder = SortOrder.INSERTION) -> Path:
    """
    Write a database to a .dbc file, creating parent directories.

    Returns:
        The written path

    Raises:
        InvalidExtension: Path does not end in .dbc
        WriteError: Directory or file cannot be written
    """
    path = Path(file_path)
    if path.suffix.lower() != ".dbc":
        raise InvalidExtension(f"DBC output must use the .dbc extension: {path}", path=path)

    text = dumps(db, order)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding=OUTPUT_ENCODING, errors="replace")
    except OSError as e:
        raise WriteError(f"Cannot write DBC file {path}: {e}", path=path, original_error=e)

    logger.info(f"Saved DBC: {path.name} ({db.message_count} messages, {db.signal_count} signals)")
    return path
