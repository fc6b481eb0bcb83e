"""
In-memory CAN network database.

CanDatabase owns every node, message and signal in generational arenas and
keeps the lookup indexes and cross references consistent:
- name indexes (case-insensitive) for nodes, messages and signals
- numeric id and canonical hex id indexes for messages
- sender/receiver aggregates on nodes and messages
- multiplexing case tables on messages
- typed attribute declarations, defaults and values, including values
  attached to (node, signal) and (node, message) pairs

Every mutating operation validates its input first and raises a
DatabaseError subclass before touching any state, so a failed call leaves
the database unchanged.
"""

from typing import Iterator, Optional, Union

from ..utils.logging_config import get_logger
from . import multiplexing
from .arena import Arena, Key, MessageKey, NodeKey, SignalKey
from .attributes import AttributeKind, AttributeScope, AttributeSpec, AttributeValue, Number, RelationKind
from .enums import ByteOrder, MuxRole, SortOrder, ValueEncoding
from .errors import (
    AttributeAlreadyExists,
    AttributeNotFound,
    DatabaseError,
    MessageAlreadyExists,
    MessageIdAlreadyAssigned,
    MessageMissing,
    NodeAlreadyExists,
    NodeMissing,
    SignalAlreadyAssociated,
    SignalAlreadyExists,
    SignalMissing,
    SignalNotAssociated,
    ValueTableError,
)
from .layout import check_signal_fits
from .models import Message, MuxSelector, Node, Signal, format_id_hex, normalize_id_hex

logger = get_logger("database")

AnyScope = Union[AttributeScope, RelationKind]
RelationPair = frozenset


class CanDatabase:
    """
    A complete CAN network description.

    Keys returned by the add_* and copy_* operations stay valid until the
    entity is deleted; after that they no longer resolve.
    """

    def __init__(self, name: str = "", version: str = "", bus_type: str = "CAN"):
        self.name = name
        self.version = version
        self.bus_type = bus_type
        self.comment = ""

        self.nodes: Arena[NodeKey, Node] = Arena(NodeKey)
        self.messages: Arena[MessageKey, Message] = Arena(MessageKey)
        self.signals: Arena[SignalKey, Signal] = Arena(SignalKey)

        self._node_order: list[NodeKey] = []
        self._message_order: list[MessageKey] = []
        self._signal_order: list[SignalKey] = []

        self._node_by_name: dict[str, NodeKey] = {}
        self._message_by_name: dict[str, MessageKey] = {}
        self._message_by_id: dict[int, MessageKey] = {}
        self._message_by_hex: dict[str, MessageKey] = {}
        self._signal_by_name: dict[str, SignalKey] = {}

        self.attribute_specs: dict[AnyScope, dict[str, AttributeSpec]] = {
            scope: {} for scope in (*AttributeScope, *RelationKind)
        }
        self.attributes: dict[str, AttributeValue] = {}
        self._relation_values: dict[RelationPair, dict[str, AttributeValue]] = {}

        self.value_tables: dict[str, dict[int, str]] = {}

    def __repr__(self) -> str:
        return (
            f"CanDatabase(name={self.name!r}, nodes={len(self.nodes)}, "
            f"messages={len(self.messages)}, signals={len(self.signals)})"
        )

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def message_count(self) -> int:
        return len(self.messages)

    @property
    def signal_count(self) -> int:
        return len(self.signals)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def add_node(self, name: str) -> NodeKey:
        """
        Add a node.

        Raises:
            NodeAlreadyExists: A node with the same name (any case) exists
        """
        _require_name(name, "node")
        if name.lower() in self._node_by_name:
            raise NodeAlreadyExists(name)

        node = Node(name=name)
        self._apply_defaults(AttributeScope.NODE, node.attributes)
        key = self.nodes.insert(node)
        self._node_by_name[name.lower()] = key
        self._node_order.append(key)
        return key

    def add_message(self, name: str, message_id: int, byte_length: int) -> MessageKey:
        """
        Add a message with a unique name and a unique numeric id.

        Args:
            name: Message name
            message_id: Id as written in DBC files (bit 31 flags extended ids)
            byte_length: Payload length (DLC) in bytes

        Raises:
            MessageAlreadyExists: Name already in use
            MessageIdAlreadyAssigned: Numeric id already in use
        """
        _require_name(name, "message")
        if message_id < 0 or byte_length < 0:
            raise DatabaseError(f"Invalid id {message_id} or length {byte_length} for '{name}'", "message", name)
        if name.lower() in self._message_by_name:
            raise MessageAlreadyExists(name)
        if message_id in self._message_by_id:
            owner = self.messages.get(self._message_by_id[message_id])
            raise MessageIdAlreadyAssigned(format_id_hex(message_id), owner.name if owner else None)

        message = Message(name=name, message_id=message_id, byte_length=byte_length)
        self._apply_defaults(AttributeScope.MESSAGE, message.attributes)
        key = self.messages.insert(message)
        self._message_by_name[name.lower()] = key
        self._message_by_id[message_id] = key
        self._message_by_hex[message.id_hex] = key
        self._message_order.append(key)
        return key

    def add_signal(
        self,
        name: str,
        byte_order: ByteOrder = ByteOrder.INTEL,
        encoding: ValueEncoding = ValueEncoding.UNSIGNED,
        factor: float = 1.0,
        offset: float = 0.0,
        minimum: float = 0.0,
        maximum: float = 0.0,
        unit: str = "",
        bit_start: int = 0,
        bit_length: int = 0,
    ) -> SignalKey:
        """
        Add an unbound signal.

        The bit position may be given here or when binding the signal with
        add_msg_sig_relation.

        Raises:
            SignalAlreadyExists: Name already in use
        """
        _require_name(name, "signal")
        if name.lower() in self._signal_by_name:
            raise SignalAlreadyExists(name)

        signal = Signal(
            name=name,
            bit_start=bit_start,
            bit_length=bit_length,
            byte_order=byte_order,
            encoding=encoding,
            factor=factor,
            offset=offset,
            minimum=minimum,
            maximum=maximum,
            unit=unit,
        )
        self._apply_defaults(AttributeScope.SIGNAL, signal.attributes)
        key = self.signals.insert(signal)
        self._signal_by_name[name.lower()] = key
        self._signal_order.append(key)
        return key

    # ------------------------------------------------------------------
    # Relations
    # ------------------------------------------------------------------

    def add_msg_sig_relation(
        self,
        signal_key: SignalKey,
        message_key: MessageKey,
        mux_role: MuxRole = MuxRole.NONE,
        selector: Optional[MuxSelector] = None,
        *,
        switch: Optional[SignalKey] = None,
        bit_start: Optional[int] = None,
        bit_length: Optional[int] = None,
        byte_order: Optional[ByteOrder] = None,
    ) -> SignalKey:
        """
        Bind a signal to a message.

        The layout is validated against the message payload and the
        multiplexing request is resolved before anything changes.

        Args:
            signal_key: Unbound signal
            message_key: Owning message
            mux_role: Multiplexing role inside the message
            selector: Switch value(s) for a MULTIPLEXED signal
            switch: Explicit multiplexor; inferred when the message has
                exactly one, attached later otherwise
            bit_start: New start bit, keeps the current one when None
            bit_length: New length, keeps the current one when None
            byte_order: New byte order, keeps the current one when None

        Returns:
            The signal key

        Raises:
            SignalMissing, MessageMissing: Stale keys
            SignalAlreadyAssociated: Signal is bound to a message already
            LayoutError: Signal does not fit the payload
            MultiplexingError: Missing selector or foreign switch
        """
        signal = self._require_signal(signal_key)
        message = self._require_message(message_key)
        if signal.message is not None:
            owner = self.messages.get(signal.message)
            raise SignalAlreadyAssociated(signal.name, owner.name if owner else str(signal.message))

        start = signal.bit_start if bit_start is None else bit_start
        length = signal.bit_length if bit_length is None else bit_length
        order = signal.byte_order if byte_order is None else byte_order
        check_signal_fits(message.byte_length, start, length, order)
        resolved_switch = multiplexing.resolve_switch(message, signal.name, mux_role, selector, switch)

        signal.bit_start, signal.bit_length, signal.byte_order = start, length, order
        signal.message = message_key
        message.signals.append(signal_key)
        multiplexing.attach(message, signal_key, signal, mux_role, selector, resolved_switch, self.signals.get)
        signal.compile()

        for node_key in signal.receiver_nodes:
            if node_key not in message.receiver_nodes:
                message.receiver_nodes.append(node_key)
        for node_key in message.sender_nodes:
            node = self.nodes.get(node_key)
            if node is not None and signal_key not in node.signals_sent:
                node.signals_sent.append(signal_key)
        return signal_key

    def remove_msg_sig_relation(self, signal_key: SignalKey) -> None:
        """
        Unbind a signal from its message; the signal itself survives.

        Raises:
            SignalMissing: Stale key
            SignalNotAssociated: Signal is not bound
        """
        signal = self._require_signal(signal_key)
        if signal.message is None:
            raise SignalNotAssociated(signal.name)

        message = self.messages.get(signal.message)
        if message is not None:
            multiplexing.detach(message, signal_key, signal, self.signals.get)
            message.signals.remove(signal_key)
            self._refresh_message_receivers(message)
            for node_key in message.sender_nodes:
                node = self.nodes.get(node_key)
                if node is not None and signal_key in node.signals_sent:
                    node.signals_sent.remove(signal_key)
        signal.message = None

    def add_sender_relation(self, message_key: MessageKey, node_key: NodeKey) -> None:
        """Make a node a transmitter of a message; no-op when it already is."""
        message = self._require_message(message_key)
        node = self._require_node(node_key)
        if node_key in message.sender_nodes:
            return
        message.sender_nodes.append(node_key)
        node.messages_sent.append(message_key)
        for signal_key in message.signals:
            if signal_key not in node.signals_sent:
                node.signals_sent.append(signal_key)

    def remove_sender_relation(self, message_key: MessageKey, node_key: NodeKey) -> None:
        message = self._require_message(message_key)
        node = self._require_node(node_key)
        if node_key not in message.sender_nodes:
            return
        message.sender_nodes.remove(node_key)
        node.messages_sent.remove(message_key)
        self._refresh_node_signals_sent(node)

    def add_sig_receiver_node(self, signal_key: SignalKey, node_key: NodeKey) -> None:
        """Make a node a receiver of a signal; no-op when it already is."""
        signal = self._require_signal(signal_key)
        node = self._require_node(node_key)
        if node_key in signal.receiver_nodes:
            return
        signal.receiver_nodes.append(node_key)
        node.signals_read.append(signal_key)
        message = self.messages.get(signal.message)
        if message is not None and node_key not in message.receiver_nodes:
            message.receiver_nodes.append(node_key)

    def remove_sig_receiver_node(self, signal_key: SignalKey, node_key: NodeKey) -> None:
        signal = self._require_signal(signal_key)
        node = self._require_node(node_key)
        if node_key not in signal.receiver_nodes:
            return
        signal.receiver_nodes.remove(node_key)
        if signal_key in node.signals_read:
            node.signals_read.remove(signal_key)
        message = self.messages.get(signal.message)
        if message is not None:
            self._refresh_message_receivers(message)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set_signal_layout(
        self,
        signal_key: SignalKey,
        bit_start: Optional[int] = None,
        bit_length: Optional[int] = None,
        byte_order: Optional[ByteOrder] = None,
    ) -> None:
        """
        Change a signal's position; bound signals are re-validated first.

        Raises:
            LayoutError: New position does not fit the owning message
        """
        signal = self._require_signal(signal_key)
        start = signal.bit_start if bit_start is None else bit_start
        length = signal.bit_length if bit_length is None else bit_length
        order = signal.byte_order if byte_order is None else byte_order
        message = self.messages.get(signal.message)
        if message is not None:
            check_signal_fits(message.byte_length, start, length, order)
        signal.bit_start, signal.bit_length, signal.byte_order = start, length, order
        signal.compile()

    def set_signal_encoding(self, signal_key: SignalKey, encoding: ValueEncoding) -> None:
        """Change the value encoding; IEEE encodings force 32 or 64 bits."""
        if encoding is ValueEncoding.IEEE_FLOAT:
            self.set_signal_layout(signal_key, bit_length=32)
        elif encoding is ValueEncoding.IEEE_DOUBLE:
            self.set_signal_layout(signal_key, bit_length=64)
        self._require_signal(signal_key).encoding = encoding

    def add_value_table_entry(self, signal_key: SignalKey, value: int, description: str) -> None:
        """
        Raises:
            ValueTableError: Empty description or value already described
        """
        signal = self._require_signal(signal_key)
        if not description:
            raise ValueTableError(f"Empty description for value {value} of '{signal.name}'", signal.name, value)
        if value in signal.value_table:
            raise ValueTableError(f"Value {value} of '{signal.name}' already described", signal.name, value)
        signal.value_table[value] = description

    def remove_value_table_entry(self, signal_key: SignalKey, value: int) -> None:
        signal = self._require_signal(signal_key)
        if value not in signal.value_table:
            raise ValueTableError(f"Value {value} of '{signal.name}' is not described", signal.name, value)
        del signal.value_table[value]

    def set_value_table(self, signal_key: SignalKey, entries: dict[int, str]) -> None:
        """Replace a signal's whole value table."""
        self._require_signal(signal_key).value_table = dict(entries)

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    def delete_node(self, node_key: NodeKey) -> None:
        """Delete a node and drop it from every sender/receiver list."""
        node = self._require_node(node_key)
        for _, message in self.messages.items():
            if node_key in message.sender_nodes:
                message.sender_nodes.remove(node_key)
            if node_key in message.receiver_nodes:
                message.receiver_nodes.remove(node_key)
        for signal_key in node.signals_read:
            signal = self.signals.get(signal_key)
            if signal is not None and node_key in signal.receiver_nodes:
                signal.receiver_nodes.remove(node_key)

        self._purge_relation_values(node_key)
        del self._node_by_name[node.name.lower()]
        self._node_order.remove(node_key)
        self.nodes.remove(node_key)
        logger.debug(f"Deleted node {node.name}")

    def delete_message(self, message_key: MessageKey) -> None:
        """Delete a message; its signals survive unbound."""
        message = self._require_message(message_key)
        for signal_key in list(message.signals):
            self.remove_msg_sig_relation(signal_key)
        for node_key in message.sender_nodes:
            node = self.nodes.get(node_key)
            if node is not None and message_key in node.messages_sent:
                node.messages_sent.remove(message_key)

        self._purge_relation_values(message_key)
        del self._message_by_name[message.name.lower()]
        del self._message_by_id[message.message_id]
        del self._message_by_hex[message.id_hex]
        self._message_order.remove(message_key)
        self.messages.remove(message_key)
        logger.debug(f"Deleted message {message.name} ({message.id_hex})")

    def delete_signal(self, signal_key: SignalKey) -> None:
        """Delete a signal, unbinding it and dropping every reference to it."""
        signal = self._require_signal(signal_key)
        if signal.message is not None:
            self.remove_msg_sig_relation(signal_key)
        for node_key in signal.receiver_nodes:
            node = self.nodes.get(node_key)
            if node is not None and signal_key in node.signals_read:
                node.signals_read.remove(signal_key)

        self._purge_relation_values(signal_key)
        del self._signal_by_name[signal.name.lower()]
        self._signal_order.remove(signal_key)
        self.signals.remove(signal_key)
        logger.debug(f"Deleted signal {signal.name}")

    # ------------------------------------------------------------------
    # Copies
    # ------------------------------------------------------------------

    def copy_node(self, node_key: NodeKey) -> NodeKey:
        """
        Duplicate a node under a '_copy[N]' name.

        The copy sends the same messages, receives the same signals and
        carries the same attributes and relation attribute values.
        """
        source = self._require_node(node_key)
        new_key = self.add_node(_copy_name(source.name, self._node_by_name))
        new = self.nodes.get(new_key)
        new.comment = source.comment
        new.attributes = dict(source.attributes)
        for message_key in list(source.messages_sent):
            self.add_sender_relation(message_key, new_key)
        for signal_key in list(source.signals_read):
            self.add_sig_receiver_node(signal_key, new_key)
        self._copy_relation_values(node_key, new_key)
        return new_key

    def copy_message(self, message_key: MessageKey) -> MessageKey:
        """
        Duplicate a message and all of its signals.

        The copy gets a '_copy[N]' name and the next free numeric id above the
        source id; its signals are copied under '_copy[N]' names with the
        same layout and multiplexing.
        """
        source = self._require_message(message_key)
        new_id = source.message_id + 1
        while new_id in self._message_by_id:
            new_id += 1

        new_key = self.add_message(_copy_name(source.name, self._message_by_name), new_id, source.byte_length)
        new = self.messages.get(new_key)
        new.comment = source.comment
        new.attributes = dict(source.attributes)
        for node_key in source.sender_nodes:
            self.add_sender_relation(new_key, node_key)

        mapping: dict[SignalKey, SignalKey] = {}
        # Multiplexors first so every dependent has its switch available
        ordered = sorted(
            source.signals,
            key=lambda k: self.signals.get(k).mux_role is not MuxRole.MULTIPLEXOR,
        )
        for signal_key in ordered:
            original = self.signals.get(signal_key)
            copy_key = self.copy_signal(signal_key)
            mapping[signal_key] = copy_key
            self.add_msg_sig_relation(
                copy_key,
                new_key,
                original.mux_role,
                original.mux_selector,
                switch=mapping.get(original.mux_switch) if original.mux_switch else None,
            )
        new.signals = [mapping[k] for k in source.signals]
        self._copy_relation_values(message_key, new_key)
        logger.debug(f"Copied message {source.name} to {new.name} ({new.id_hex})")
        return new_key

    def copy_signal(self, signal_key: SignalKey) -> SignalKey:
        """Duplicate a signal as an unbound '_copy[N]' signal."""
        source = self._require_signal(signal_key)
        new_key = self.add_signal(
            _copy_name(source.name, self._signal_by_name),
            byte_order=source.byte_order,
            encoding=source.encoding,
            factor=source.factor,
            offset=source.offset,
            minimum=source.minimum,
            maximum=source.maximum,
            unit=source.unit,
            bit_start=source.bit_start,
            bit_length=source.bit_length,
        )
        new = self.signals.get(new_key)
        new.comment = source.comment
        new.value_table = dict(source.value_table)
        new.attributes = dict(source.attributes)
        new.mux_role = source.mux_role
        new.mux_selector = source.mux_selector
        for node_key in source.receiver_nodes:
            self.add_sig_receiver_node(new_key, node_key)
        self._copy_relation_values(signal_key, new_key)
        return new_key

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_node(self, key: Optional[NodeKey]) -> Optional[Node]:
        return self.nodes.get(key)

    def get_message(self, key: Optional[MessageKey]) -> Optional[Message]:
        return self.messages.get(key)

    def get_signal(self, key: Optional[SignalKey]) -> Optional[Signal]:
        return self.signals.get(key)

    def node_key_by_name(self, name: str) -> Optional[NodeKey]:
        return self._node_by_name.get(name.lower())

    def get_node_by_name(self, name: str) -> Optional[Node]:
        return self.nodes.get(self.node_key_by_name(name))

    def message_key_by_id(self, message_id: int) -> Optional[MessageKey]:
        return self._message_by_id.get(message_id)

    def get_message_by_id(self, message_id: int) -> Optional[Message]:
        return self.messages.get(self.message_key_by_id(message_id))

    def message_key_by_id_hex(self, id_hex: str) -> Optional[MessageKey]:
        normalized = normalize_id_hex(id_hex)
        return self._message_by_hex.get(normalized) if normalized else None

    def get_message_by_id_hex(self, id_hex: str) -> Optional[Message]:
        """Look up a message by hex id in any common spelling ('0x64', '64h')."""
        return self.messages.get(self.message_key_by_id_hex(id_hex))

    def message_key_by_name(self, name: str) -> Optional[MessageKey]:
        return self._message_by_name.get(name.lower())

    def get_message_by_name(self, name: str) -> Optional[Message]:
        return self.messages.get(self.message_key_by_name(name))

    def signal_key_by_name(self, name: str) -> Optional[SignalKey]:
        return self._signal_by_name.get(name.lower())

    def get_signal_by_name(self, name: str) -> Optional[Signal]:
        return self.signals.get(self.signal_key_by_name(name))

    def find_signal(self, message_key: Optional[MessageKey], name: str) -> Optional[SignalKey]:
        """Key of the named signal if it is bound to the given message (None: unbound)."""
        key = self.signal_key_by_name(name)
        signal = self.signals.get(key)
        if signal is None or signal.message != message_key:
            return None
        return key

    def iter_nodes(self, order: SortOrder = SortOrder.INSERTION) -> Iterator[tuple[NodeKey, Node]]:
        return self._iterate(self._node_order, self.nodes, order)

    def iter_messages(self, order: SortOrder = SortOrder.INSERTION) -> Iterator[tuple[MessageKey, Message]]:
        return self._iterate(self._message_order, self.messages, order)

    def iter_signals(self, order: SortOrder = SortOrder.INSERTION) -> Iterator[tuple[SignalKey, Signal]]:
        return self._iterate(self._signal_order, self.signals, order)

    def iter_message_signals(self, message_key: MessageKey) -> Iterator[tuple[SignalKey, Signal]]:
        """Signals of one message in binding order."""
        message = self._require_message(message_key)
        for key in message.signals:
            signal = self.signals.get(key)
            if signal is not None:
                yield key, signal

    def unbound_signals(self) -> list[tuple[SignalKey, Signal]]:
        return [(key, signal) for key, signal in self.iter_signals() if signal.message is None]

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def define_attribute(
        self,
        name: str,
        scope: AnyScope,
        kind: AttributeKind,
        minimum: Optional[Number] = None,
        maximum: Optional[Number] = None,
        options: Optional[list[str]] = None,
    ) -> AttributeSpec:
        """
        Declare an attribute for an entity scope or a relation kind.

        Raises:
            AttributeAlreadyExists: Name already declared for the scope
        """
        specs = self.attribute_specs[scope]
        if name in specs:
            raise AttributeAlreadyExists(name, scope)
        spec = AttributeSpec(name, scope, kind, minimum, maximum, list(options or []))
        specs[name] = spec
        return spec

    def get_attribute_spec(self, name: str, scope: AnyScope) -> Optional[AttributeSpec]:
        return self.attribute_specs[scope].get(name)

    def find_attribute_specs(self, name: str, relation: bool = False) -> list[AttributeSpec]:
        """Declarations of a name across entity scopes, or across relation kinds."""
        scopes = RelationKind if relation else AttributeScope
        return [self.attribute_specs[scope][name] for scope in scopes if name in self.attribute_specs[scope]]

    def set_attribute_default(
        self,
        name: str,
        value: Union[AttributeValue, str, int, float],
        scope: Optional[AnyScope] = None,
    ) -> None:
        """
        Set the default of a declared attribute.

        Without a scope the default applies to every entity scope declaring
        the name. Existing entities without an explicit value get the new
        default immediately; database-scope defaults are not injected.

        DBC text carries a single default statement per name. When scopes
        sharing a name get different defaults, only the first survives a
        write; the writer keeps the other scopes' values as explicit
        assignments instead.

        Raises:
            AttributeNotFound: No declaration with that name
            AttributeValueError: Value does not match the declared kind
        """
        if scope is not None:
            specs = [self.attribute_specs[scope][name]] if name in self.attribute_specs[scope] else []
        else:
            specs = self.find_attribute_specs(name)
        if not specs:
            raise AttributeNotFound(name, scope)

        defaults = [spec.coerce(value) for spec in specs]
        for spec, default in zip(specs, defaults):
            previous = spec.default
            spec.default = default
            for attributes in self._scope_attribute_maps(spec.scope):
                current = attributes.get(name)
                if current is None or current == previous:
                    attributes[name] = default

    def set_attribute(
        self,
        scope: AttributeScope,
        key: Optional[Key],
        name: str,
        value: Union[AttributeValue, str, int, float],
    ) -> None:
        """
        Assign an attribute value to the database (key None) or an entity.

        Raises:
            AttributeNotFound: Name not declared for the scope
            AttributeValueError: Value does not match the declared kind
            NodeMissing, MessageMissing, SignalMissing: Stale key
        """
        spec = self.attribute_specs[scope].get(name)
        if spec is None:
            raise AttributeNotFound(name, scope)
        attributes = self._attribute_map(scope, key)
        typed = spec.coerce(value)
        attributes[name] = typed
        if scope is AttributeScope.DATABASE:
            if name == "DBName":
                self.name = str(typed.value)
            elif name == "BusType":
                self.bus_type = str(typed.value)

    def get_attribute(self, scope: AttributeScope, key: Optional[Key], name: str) -> Optional[AttributeValue]:
        """Explicit or defaulted value; None when neither exists."""
        value = self._attribute_map(scope, key).get(name)
        if value is not None:
            return value
        spec = self.attribute_specs[scope].get(name)
        return spec.default if spec is not None else None

    def set_relation_attribute_default(
        self,
        name: str,
        value: Union[AttributeValue, str, int, float],
        kind: Optional[RelationKind] = None,
    ) -> None:
        if kind is not None:
            specs = [self.attribute_specs[kind][name]] if name in self.attribute_specs[kind] else []
        else:
            specs = self.find_attribute_specs(name, relation=True)
        if not specs:
            raise AttributeNotFound(name, kind)
        defaults = [spec.coerce(value) for spec in specs]
        for spec, default in zip(specs, defaults):
            spec.default = default

    def set_relation_attribute(
        self,
        kind: RelationKind,
        node_key: NodeKey,
        other_key: Union[SignalKey, MessageKey],
        name: str,
        value: Union[AttributeValue, str, int, float],
    ) -> None:
        """
        Attach a value to a (node, signal) or (node, message) pair.

        Raises:
            AttributeNotFound: Name not declared for the relation kind
            AttributeValueError: Value does not match the declared kind
            NodeMissing, SignalMissing, MessageMissing: Stale keys
        """
        spec = self.attribute_specs[kind].get(name)
        if spec is None:
            raise AttributeNotFound(name, kind)
        self._require_node(node_key)
        if kind is RelationKind.NODE_SIGNAL:
            self._require_signal(other_key)  # type: ignore[arg-type]
        else:
            self._require_message(other_key)  # type: ignore[arg-type]
        typed = spec.coerce(value)
        self._relation_values.setdefault(frozenset((node_key, other_key)), {})[name] = typed

    def get_relation_attribute(
        self,
        node_key: NodeKey,
        other_key: Union[SignalKey, MessageKey],
        name: str,
    ) -> Optional[AttributeValue]:
        """Value of a relation attribute; the pair may be given in either order."""
        value = self._relation_values.get(frozenset((node_key, other_key)), {}).get(name)
        if value is not None:
            return value
        kind = RelationKind.NODE_SIGNAL
        if isinstance(node_key, MessageKey) or isinstance(other_key, MessageKey):
            kind = RelationKind.NODE_MESSAGE
        spec = self.attribute_specs[kind].get(name)
        return spec.default if spec is not None else None

    def iter_relation_values(self) -> Iterator[tuple[NodeKey, Union[SignalKey, MessageKey], str, AttributeValue]]:
        """Yield (node_key, other_key, name, value) for every explicit relation value."""
        for pair, values in self._relation_values.items():
            node_key = next(k for k in pair if isinstance(k, NodeKey))
            other_key = next(k for k in pair if not isinstance(k, NodeKey))
            for name, value in values.items():
                yield node_key, other_key, name, value

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_node(self, key: NodeKey) -> Node:
        node = self.nodes.get(key)
        if node is None:
            raise NodeMissing(key)
        return node

    def _require_message(self, key: MessageKey) -> Message:
        message = self.messages.get(key)
        if message is None:
            raise MessageMissing(key)
        return message

    def _require_signal(self, key: SignalKey) -> Signal:
        signal = self.signals.get(key)
        if signal is None:
            raise SignalMissing(key)
        return signal

    def _attribute_map(self, scope: AttributeScope, key: Optional[Key]) -> dict[str, AttributeValue]:
        if scope is AttributeScope.DATABASE:
            return self.attributes
        if scope is AttributeScope.NODE:
            return self._require_node(key).attributes  # type: ignore[arg-type]
        if scope is AttributeScope.MESSAGE:
            return self._require_message(key).attributes  # type: ignore[arg-type]
        return self._require_signal(key).attributes  # type: ignore[arg-type]

    def _scope_attribute_maps(self, scope: AnyScope) -> Iterator[dict[str, AttributeValue]]:
        if scope is AttributeScope.NODE:
            arena = self.nodes
        elif scope is AttributeScope.MESSAGE:
            arena = self.messages
        elif scope is AttributeScope.SIGNAL:
            arena = self.signals
        else:
            return
        for _, entity in arena.items():
            yield entity.attributes

    def _apply_defaults(self, scope: AttributeScope, attributes: dict[str, AttributeValue]) -> None:
        for name, spec in self.attribute_specs[scope].items():
            if spec.default is not None:
                attributes[name] = spec.default

    def _refresh_message_receivers(self, message: Message) -> None:
        receivers: list[NodeKey] = []
        for signal_key in message.signals:
            signal = self.signals.get(signal_key)
            if signal is None:
                continue
            for node_key in signal.receiver_nodes:
                if node_key not in receivers:
                    receivers.append(node_key)
        message.receiver_nodes = receivers

    def _refresh_node_signals_sent(self, node: Node) -> None:
        sent: list[SignalKey] = []
        for message_key in node.messages_sent:
            message = self.messages.get(message_key)
            if message is None:
                continue
            sent.extend(k for k in message.signals if k not in sent)
        node.signals_sent = sent

    def _purge_relation_values(self, key: Key) -> None:
        for pair in [pair for pair in self._relation_values if key in pair]:
            del self._relation_values[pair]

    def _copy_relation_values(self, source: Key, target: Key) -> None:
        for pair, values in list(self._relation_values.items()):
            if source in pair:
                (partner,) = pair - {source}
                self._relation_values[frozenset((partner, target))] = dict(values)

    def _iterate(self, keys: list, arena: Arena, order: SortOrder) -> Iterator:
        pairs = [(key, arena.get(key)) for key in keys]
        if order is SortOrder.NAME:
            pairs.sort(key=lambda pair: pair[1].name.lower())
        return iter(pairs)


def _require_name(name: str, entity: str) -> None:
    if not name or any(char.isspace() for char in name):
        raise DatabaseError(f"Invalid {entity} name {name!r}", entity, name)


def _copy_name(name: str, taken: dict[str, Key]) -> str:
    candidate = f"{name}_copy"
    counter = 1
    while candidate.lower() in taken:
        candidate = f"{name}_copy{counter}"
        counter += 1
    return candidate
