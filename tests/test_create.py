import unittest
import sys
from datetime import date
from pathlib import Path

# Add src to path to allow imports
sys.path.append(str(Path(__file__).parent.parent / "src"))

from can_dbc.core.attributes import AttributeScope
from can_dbc.core.errors import DatabaseCreateError
from can_dbc.create import new_database
from can_dbc.grammar import load_string
from can_dbc.writer import dumps


class TestNewDatabase(unittest.TestCase):
    def value(self, db, name):
        return db.get_attribute(AttributeScope.DATABASE, None, name).value

    def test_classic_can(self):
        db = new_database("Chassis", today=date(2024, 3, 15))
        self.assertEqual(db.name, "Chassis")
        self.assertEqual(db.version, "1.0")
        self.assertEqual(db.bus_type, "CAN")
        self.assertEqual(self.value(db, "DBName"), "Chassis")
        self.assertEqual(self.value(db, "Baudrate"), 500_000)
        self.assertEqual(self.value(db, "VersionDay"), 15)
        self.assertEqual(self.value(db, "VersionWeek"), 11)
        self.assertEqual(self.value(db, "VersionMonth"), 3)
        self.assertEqual(self.value(db, "VersionYear"), 24)
        self.assertIsNone(db.get_attribute_spec("BaudrateCANFD", AttributeScope.DATABASE))
        self.assertEqual(db.message_count, 0)

    def test_can_fd(self):
        db = new_database("Fd", bus_type="CAN FD", baudrate_fd=5_000_000)
        self.assertEqual(db.bus_type, "CAN FD")
        self.assertEqual(self.value(db, "BaudrateCANFD"), 5_000_000)

    def test_invalid_requests(self):
        with self.assertRaises(DatabaseCreateError):
            new_database("")
        with self.assertRaises(DatabaseCreateError):
            new_database("Net", version=" ")
        with self.assertRaises(DatabaseCreateError):
            new_database("Net", bus_type="LIN")

    def test_survives_round_trip(self):
        db = new_database("Body", bus_type="CAN FD", version="2.1")
        again = load_string(dumps(db))
        self.assertEqual((again.name, again.version, again.bus_type), ("Body", "2.1", "CAN FD"))
        self.assertEqual(self.value(again, "Baudrate"), 500_000)


if __name__ == "__main__":
    unittest.main()
