import unittest
import sys
import tempfile
from pathlib import Path

import cantools

# Add src to path to allow imports
sys.path.append(str(Path(__file__).parent.parent / "src"))

from can_dbc.core.attributes import AttributeKind, AttributeScope
from can_dbc.core.database import CanDatabase
from can_dbc.core.enums import SortOrder
from can_dbc.core.errors import InvalidExtension, WriteError
from can_dbc.grammar import load_file, load_string
from can_dbc.writer import dumps, save_to_file

NETWORK_DBC = """VERSION "3.0"

NS_ :

BS_:

BU_: BCM GW Dash

VAL_TABLE_ OnOff 1 "On" 0 "Off" ;

BO_ 100 Key_Status: 4 BCM
 SG_ Level : 0|8@1+ (1,0) [0|255] "" GW
 SG_ Temp : 8|12@1- (0.5,-40) [-40|100] "degC" GW,Dash

BO_ 512 Gearbox: 8 GW
 SG_ Mode M : 0|8@1+ (1,0) [0|255] "" Dash
 SG_ Ratio m1 : 8|16@0+ (0.01,0) [0|655.35] "" Dash
 SG_ Torque m2-3 : 8|16@1- (1,0) [-32768|32767] "Nm" Dash

BO_ 2566844672 J1939_Msg: 8 Dash
 SG_ Pressure : 0|32@1+ (1,0) [0|0] "kPa" GW

BO_TX_BU_ 512 : GW,BCM;

BA_DEF_ "DBName" STRING ;
BA_DEF_ BU_ "NodeLayerModules" STRING ;
BA_DEF_ BO_ "GenMsgCycleTime" INT 0 10000;
BA_DEF_ BO_ "GenMsgSendMask" HEX 0 255;
BA_DEF_ SG_ "Crit" ENUM "No","Yes";
BA_DEF_ SG_ "GenSigStartValue" FLOAT 0 100;
BA_DEF_REL_ BU_SG_REL_ "Timeout" INT 0 1000;
BA_DEF_REL_ BU_BO_REL_ "TxDelay" INT 0 1000;
BA_DEF_DEF_ "GenMsgCycleTime" 100;
BA_DEF_DEF_ "Crit" "No";
BA_DEF_DEF_REL_ "Timeout" 50;
BA_ "DBName" "Powertrain";
BA_ "NodeLayerModules" BU_ GW "CANoeILNLVector.dll";
BA_ "GenMsgCycleTime" BO_ 512 20;
BA_ "GenMsgSendMask" BO_ 100 31;
BA_ "Crit" SG_ 100 Level 1;
BA_ "GenSigStartValue" SG_ 100 Temp 2.5;
BA_REL_ "Timeout" BU_SG_REL_ Dash SG_ 512 Ratio 200;
BA_REL_ "TxDelay" BU_BO_REL_ GW BO_ 512 7;

CM_ "Network comment";
CM_ BU_ GW "Gateway";
CM_ BO_ 100 "Key status
on two lines";
CM_ SG_ 512 Torque "Engine \\"torque\\"";
SIG_VALTYPE_ 2566844672 Pressure : 1;
VAL_ 100 Level 0 "Off" 1 "Acc" 2 "On" ;
"""


def _names(db, keys):
    return [entity.name for entity in (db.get_node(k) or db.get_message(k) or db.get_signal(k) for k in keys)]


def snapshot(db: CanDatabase) -> dict:
    """Key-free description of a database for semantic comparison."""
    nodes = {
        node.name: (node.comment, dict(node.attributes), _names(db, node.messages_sent), _names(db, node.signals_read))
        for _, node in db.iter_nodes()
    }
    messages = {
        message.name: (
            message.message_id,
            message.byte_length,
            message.comment,
            _names(db, message.sender_nodes),
            _names(db, message.signals),
            dict(message.attributes),
        )
        for _, message in db.iter_messages()
    }
    signals = {}
    for _, signal in db.iter_signals():
        owner = db.get_message(signal.message)
        switch = db.get_signal(signal.mux_switch)
        signals[signal.name] = (
            owner.name if owner else None,
            signal.bit_start,
            signal.bit_length,
            signal.byte_order,
            signal.encoding,
            signal.factor,
            signal.offset,
            signal.minimum,
            signal.maximum,
            signal.unit,
            _names(db, signal.receiver_nodes),
            signal.comment,
            dict(signal.value_table),
            dict(signal.attributes),
            signal.mux_role,
            signal.mux_selector,
            switch.name if switch else None,
        )
    specs = {
        (scope, name): (spec.kind, spec.minimum, spec.maximum, spec.options, spec.default)
        for scope, by_name in db.attribute_specs.items()
        for name, spec in by_name.items()
    }
    relations = {
        (db.get_node(node_key).name, _names(db, [other_key])[0], name): value
        for node_key, other_key, name, value in db.iter_relation_values()
    }
    return {
        "header": (db.name, db.version, db.comment),
        "nodes": nodes,
        "messages": messages,
        "signals": signals,
        "specs": specs,
        "attributes": dict(db.attributes),
        "relations": relations,
        "value_tables": db.value_tables,
    }


class TestRoundTrip(unittest.TestCase):
    def setUp(self):
        self.db = load_string(NETWORK_DBC)

    def test_semantic_round_trip(self):
        again = load_string(dumps(self.db))
        self.assertEqual(snapshot(again), snapshot(self.db))

    def test_second_round_is_textually_stable(self):
        text = dumps(self.db)
        self.assertEqual(dumps(load_string(text)), text)

    def test_section_order(self):
        text = dumps(self.db)
        # Line starts only; the NS_ block lists the same keywords indented
        keywords = [
            "VERSION",
            "\nNS_ :",
            "\nBS_:",
            "\nBU_:",
            "\nVAL_TABLE_ ",
            "\nBO_ 100",
            "\nBO_TX_BU_ ",
            "\nBA_DEF_ ",
            "\nBA_DEF_REL_ ",
            "\nBA_DEF_DEF_ ",
            "\nBA_DEF_DEF_REL_ ",
            "\nBA_ ",
            "\nBA_REL_ ",
            "\nCM_ ",
            "\nSIG_VALTYPE_ ",
            "\nVAL_ ",
        ]
        positions = [text.index(keyword) for keyword in keywords]
        self.assertEqual(positions, sorted(positions))

    def test_single_sender_has_no_transmitter_line(self):
        text = dumps(self.db)
        self.assertIn("BO_TX_BU_ 512 : GW,BCM;", text)
        self.assertNotIn("BO_TX_BU_ 100", text)

    def test_default_values_omitted(self):
        text = dumps(self.db)
        self.assertIn('BA_ "GenMsgCycleTime" BO_ 512 20;', text)
        self.assertNotIn('BA_ "GenMsgCycleTime" BO_ 100', text)
        self.assertIn('BA_DEF_DEF_ "GenMsgCycleTime" 100;', text)
        self.assertIn('BA_DEF_DEF_ "Crit" "No";', text)
        self.assertIn('BA_ "Crit" SG_ 100 Level 1;', text)

    def test_multiplexing_tags(self):
        text = dumps(self.db)
        self.assertIn(" SG_ Mode M : 0|8@1+", text)
        self.assertIn(" SG_ Torque m2-3 : 8|16@1-", text)

    def test_name_order(self):
        text = dumps(self.db, SortOrder.NAME)
        self.assertIn("BU_: BCM Dash GW", text)
        self.assertLess(text.index("BO_ 512 Gearbox"), text.index("BO_ 2566844672 J1939_Msg"))
        self.assertLess(text.index("BO_ 2566844672 J1939_Msg"), text.index("BO_ 100 Key_Status"))


class TestEscapes(unittest.TestCase):
    def test_special_characters_survive(self):
        db = CanDatabase(version='v"1"')
        db.comment = 'quote " backslash \\ newline\nreturn\rtab\tend'
        node = db.add_node("ECU")
        db.get_node(node).comment = "C:\\temp"
        again = load_string(dumps(db))
        self.assertEqual(again.version, 'v"1"')
        self.assertEqual(again.comment, db.comment)
        self.assertEqual(again.get_node_by_name("ECU").comment, "C:\\temp")


class TestUnboundSignals(unittest.TestCase):
    def test_placeholder_message(self):
        db = CanDatabase()
        key = db.add_signal("Spare", bit_start=4, bit_length=4, unit="V")
        db.get_signal(key).comment = "Not placed"
        db.add_value_table_entry(key, 1, "One")

        text = dumps(db)
        self.assertIn("BO_ 3221225472 VECTOR__INDEPENDENT_SIG_MSG: 0 Vector__XXX", text)
        self.assertIn(' SG_ Spare : 4|4@1+ (1,0) [0|0] "V" Vector__XXX', text)

        again = load_string(text)
        self.assertEqual(again.message_count, 0)
        spare = again.get_signal_by_name("Spare")
        self.assertIsNone(spare.message)
        self.assertEqual(spare.comment, "Not placed")
        self.assertEqual(spare.value_table, {1: "One"})


class TestNumberPrecision(unittest.TestCase):
    def test_repeating_fractions_survive(self):
        db = CanDatabase()
        node = db.add_node("ECU")
        message = db.add_message("Status", 100, 8)
        db.add_sender_relation(message, node)
        third = 1 / 3
        signal = db.add_signal("Ratio", factor=third, offset=-third, maximum=255 * third, bit_length=8)
        db.add_msg_sig_relation(signal, message)
        db.define_attribute("Gain", AttributeScope.SIGNAL, AttributeKind.FLOAT, 0, 1)
        db.set_attribute(AttributeScope.SIGNAL, signal, "Gain", third)

        again = load_string(dumps(db))
        ratio = again.get_signal_by_name("Ratio")
        self.assertEqual((ratio.factor, ratio.offset, ratio.maximum), (third, -third, 255 * third))
        gain = again.get_attribute(AttributeScope.SIGNAL, again.signal_key_by_name("Ratio"), "Gain")
        self.assertEqual(gain.value, third)


class TestScopedDefaults(unittest.TestCase):
    def test_second_scope_default_kept_as_explicit_values(self):
        db = CanDatabase()
        db.define_attribute("Level", AttributeScope.NODE, AttributeKind.INT, 0, 10)
        db.define_attribute("Level", AttributeScope.MESSAGE, AttributeKind.INT, 0, 10)
        db.set_attribute_default("Level", 1, AttributeScope.NODE)
        db.set_attribute_default("Level", 2, AttributeScope.MESSAGE)
        db.add_node("ECU")
        db.add_message("Status", 100, 8)

        with self.assertLogs("can_dbc.writer", level="WARNING"):
            text = dumps(db)
        self.assertEqual(text.count('BA_DEF_DEF_ "Level"'), 1)

        again = load_string(text)
        node = again.node_key_by_name("ECU")
        message = again.message_key_by_name("Status")
        self.assertEqual(again.get_attribute(AttributeScope.NODE, node, "Level").value, 1)
        self.assertEqual(again.get_attribute(AttributeScope.MESSAGE, message, "Level").value, 2)


class TestForeignReader(unittest.TestCase):
    def test_cantools_reads_output(self):
        text = "\n".join(
            [
                'VERSION ""',
                "BU_: ECU GW",
                "BO_ 100 Status: 8 ECU",
                ' SG_ Speed : 0|16@1+ (0.1,0) [0|6553.5] "km/h" GW',
                ' SG_ Gear : 16|4@1+ (1,0) [0|15] "" GW',
                'BA_DEF_ BO_ "GenMsgCycleTime" INT 0 10000;',
                'BA_ "GenMsgCycleTime" BO_ 100 10;',
                'CM_ SG_ 100 Speed "Vehicle speed";',
                'VAL_ 100 Gear 0 "Park" 1 "Drive" ;',
            ]
        )
        db = load_string(text)
        reference = cantools.database.load_string(dumps(db), database_format="dbc")

        message = reference.get_message_by_name("Status")
        self.assertEqual(message.frame_id, 100)
        self.assertEqual(message.length, 8)
        self.assertEqual(message.senders, ["ECU"])
        speed = message.get_signal_by_name("Speed")
        self.assertEqual((speed.start, speed.length, speed.scale), (0, 16, 0.1))
        self.assertEqual(speed.comment, "Vehicle speed")

        payload = bytes([0x10, 0x27, 0x01, 0, 0, 0, 0, 0])
        decoded = reference.decode_message("Status", payload, decode_choices=False)
        self.assertAlmostEqual(decoded["Speed"], db.get_signal_by_name("Speed").decode(payload))
        self.assertEqual(decoded["Gear"], db.get_signal_by_name("Gear").extract_raw(payload))


class TestSaveToFile(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)
        self.db = load_string(NETWORK_DBC)

    def tearDown(self):
        self.tmp.cleanup()

    def test_creates_parent_directories(self):
        path = save_to_file(self.dir / "out" / "nested" / "network.dbc", self.db)
        self.assertTrue(path.exists())
        self.assertEqual(snapshot(load_file(path)), snapshot(self.db))

    def test_wrong_extension(self):
        with self.assertRaises(InvalidExtension):
            save_to_file(self.dir / "network.txt", self.db)

    def test_unwritable_location(self):
        blocker = self.dir / "blocker"
        blocker.write_text("not a directory")
        with self.assertRaises(WriteError) as ctx:
            save_to_file(blocker / "network.dbc", self.db)
        self.assertIsInstance(ctx.exception.original_error, OSError)


if __name__ == "__main__":
    unittest.main()
