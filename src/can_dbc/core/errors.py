"""
Exception classes for the DBC model, codec and file layer.

Three families:
- DatabaseError: structural failures raised by CanDatabase operations.
  Every operation validates before mutating, so a raised error leaves the
  database exactly as it was.
- LayoutError: a signal's bit range does not fit its message payload.
- DbcFileError: the file could not be opened, read or written at all.

Malformed statement lines are NOT reported through exceptions; the grammar
handlers drop them and the decoder counts them in ParseStats.
"""

from typing import Any, Optional


class CanDbcError(Exception):
    """Base exception for every error raised by can_dbc."""
    pass


class DatabaseError(CanDbcError):
    """Structural error raised by a database operation.

    Attributes:
        entity: Kind of entity involved ('node', 'message', 'signal', 'attribute')
        name: Name or key of the entity, when known
    """

    def __init__(self, message: str, entity: Optional[str] = None, name: Any = None):
        super().__init__(message)
        self.entity = entity
        self.name = name


class NodeAlreadyExists(DatabaseError):
    def __init__(self, name: str):
        super().__init__(f"Node '{name}' already exists", entity="node", name=name)


class MessageAlreadyExists(DatabaseError):
    def __init__(self, name: str):
        super().__init__(f"Message '{name}' already exists", entity="message", name=name)


class MessageIdAlreadyAssigned(DatabaseError):
    """Another message already owns the numeric id.

    Attributes:
        id_hex: Canonical hexadecimal form of the contested id
    """

    def __init__(self, id_hex: str, owner: Optional[str] = None):
        detail = f" (owned by '{owner}')" if owner else ""
        super().__init__(f"Message id {id_hex} already assigned{detail}", entity="message", name=owner)
        self.id_hex = id_hex


class SignalAlreadyExists(DatabaseError):
    def __init__(self, name: str):
        super().__init__(f"Signal '{name}' already exists", entity="signal", name=name)


class NodeMissing(DatabaseError):
    def __init__(self, key: Any):
        super().__init__(f"Node not found for {key}", entity="node", name=key)


class MessageMissing(DatabaseError):
    def __init__(self, key: Any):
        super().__init__(f"Message not found for {key}", entity="message", name=key)


class SignalMissing(DatabaseError):
    def __init__(self, key: Any):
        super().__init__(f"Signal not found for {key}", entity="signal", name=key)


class SignalAlreadyAssociated(DatabaseError):
    """The signal is already bound to a message.

    Attributes:
        associated_with: Name of the message currently owning the signal
    """

    def __init__(self, signal: str, associated_with: str):
        super().__init__(
            f"Signal '{signal}' is already associated with message '{associated_with}'",
            entity="signal",
            name=signal,
        )
        self.associated_with = associated_with


class SignalNotAssociated(DatabaseError):
    def __init__(self, signal: str):
        super().__init__(f"Signal '{signal}' is not bound to any message", entity="signal", name=signal)


class MultiplexingError(DatabaseError):
    """Inconsistent multiplexor/multiplexed binding request."""

    def __init__(self, message: str, signal: Optional[str] = None):
        super().__init__(message, entity="signal", name=signal)


class AttributeAlreadyExists(DatabaseError):
    def __init__(self, name: str, scope: Any):
        super().__init__(f"Attribute '{name}' already declared for {scope}", entity="attribute", name=name)
        self.scope = scope


class AttributeNotFound(DatabaseError):
    def __init__(self, name: str, scope: Any = None):
        where = f" for {scope}" if scope is not None else ""
        super().__init__(f"Attribute '{name}' is not declared{where}", entity="attribute", name=name)
        self.scope = scope


class AttributeValueError(DatabaseError):
    """A textual or typed value does not match the declared attribute kind."""

    def __init__(self, name: str, value: Any, kind: Any):
        super().__init__(f"Value {value!r} is not valid for {kind} attribute '{name}'", entity="attribute", name=name)
        self.value = value
        self.kind = kind


class ValueTableError(DatabaseError):
    """Value-table entry is duplicated, missing or has an empty description."""

    def __init__(self, message: str, signal: str, value: Optional[int] = None):
        super().__init__(message, entity="signal", name=signal)
        self.value = value


class LayoutError(DatabaseError):
    """A signal's bit range does not fit inside its message payload.

    Attributes:
        dlc: Message payload length in bytes
        total_bits: dlc * 8
    """

    def __init__(self, message: str, dlc: int, total_bits: int):
        super().__init__(message, entity="signal")
        self.dlc = dlc
        self.total_bits = total_bits


class ZeroBitLength(LayoutError):
    def __init__(self, dlc: int):
        super().__init__("Signal bit length must be greater than zero", dlc, dlc * 8)


class IntelOutOfBounds(LayoutError):
    def __init__(self, end: int, total_bits: int, dlc: int):
        super().__init__(
            f"Intel signal ends at bit {end}, beyond {total_bits} bits of a {dlc} byte message",
            dlc,
            total_bits,
        )
        self.end = end


class MotorolaStartOutOfBounds(LayoutError):
    def __init__(self, start: int, total_bits: int, dlc: int):
        super().__init__(
            f"Motorola signal starts at linear bit {start}, beyond {total_bits} bits of a {dlc} byte message",
            dlc,
            total_bits,
        )
        self.start = start


class MotorolaEndOutOfBounds(LayoutError):
    def __init__(self, end: int, total_bits: int, dlc: int):
        super().__init__(
            f"Motorola signal ends at linear bit {end}, before the start of a {dlc} byte message",
            dlc,
            total_bits,
        )
        self.end = end


class DbcFileError(CanDbcError):
    """File-level failure; aborts the whole load or save.

    Attributes:
        path: Path of the file involved
        original_error: Underlying OS or decode error, when there is one
    """

    def __init__(self, message: str, path: Any = None, original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.path = path
        self.original_error = original_error


class InvalidExtension(DbcFileError):
    pass


class OpenFileError(DbcFileError):
    pass


class ReadError(DbcFileError):
    pass


class WriteError(DbcFileError):
    pass


class DatabaseCreateError(CanDbcError):
    """New database request is missing its name or version."""
    pass
