"""Create an empty database pre-seeded with the standard network attributes."""

from datetime import date
from typing import Optional

from .core.attributes import AttributeKind, AttributeScope
from .core.database import CanDatabase
from .core.errors import DatabaseCreateError

BUS_TYPES = ("CAN", "CAN FD")


def new_database(
    name: str,
    bus_type: str = "CAN",
    version: str = "1.0",
    baudrate: int = 500_000,
    baudrate_fd: int = 2_000_000,
    today: Optional[date] = None,
) -> CanDatabase:
    """
    Build an empty database with DBName, BusType, Baudrate and version date
    attributes declared and set.

    Args:
        name: Database (network) name
        bus_type: 'CAN' or 'CAN FD'; CAN FD also gets BaudrateCANFD
        version: VERSION string
        baudrate: Arbitration baud rate
        baudrate_fd: Data phase baud rate for CAN FD
        today: Date used for the Version* attributes, defaults to today

    Raises:
        DatabaseCreateError: Empty name or version, or unknown bus type
    """
    if not name.strip():
        raise DatabaseCreateError("Database name must not be empty")
    if not version.strip():
        raise DatabaseCreateError("Database version must not be empty")
    if bus_type not in BUS_TYPES:
        raise DatabaseCreateError(f"Unknown bus type {bus_type!r}, expected one of {BUS_TYPES}")

    db = CanDatabase(name=name, version=version, bus_type=bus_type)

    def seed(attr: str, kind: AttributeKind, value, default, minimum=None, maximum=None) -> None:
        db.define_attribute(attr, AttributeScope.DATABASE, kind, minimum, maximum)
        db.set_attribute_default(attr, default, AttributeScope.DATABASE)
        db.set_attribute(AttributeScope.DATABASE, None, attr, value)

    seed("DBName", AttributeKind.STRING, name, "")
    seed("BusType", AttributeKind.STRING, bus_type, "")
    seed("Baudrate", AttributeKind.INT, baudrate, 500_000, 1, 1_000_000)
    if bus_type == "CAN FD":
        seed("BaudrateCANFD", AttributeKind.INT, baudrate_fd, 2_000_000, 1, 16_000_000)

    today = today or date.today()
    seed("VersionDay", AttributeKind.INT, today.day, 1, 1, 31)
    seed("VersionWeek", AttributeKind.INT, today.isocalendar()[1], 1, 1, 53)
    seed("VersionMonth", AttributeKind.INT, today.month, 1, 1, 12)
    seed("VersionYear", AttributeKind.INT, today.year % 100, 0, 0, 99)
    return db
