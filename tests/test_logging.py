import logging
import unittest
import sys
import tempfile
from pathlib import Path

# Add src to path to allow imports
sys.path.append(str(Path(__file__).parent.parent / "src"))

from can_dbc.grammar import load_string
from can_dbc.utils.logging_config import ROOT_LOGGER_NAME, get_logger, setup_logging


class TestLogging(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.logger = setup_logging(Path(self.tmp.name), console_level=logging.CRITICAL)

    def tearDown(self):
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()
        self.tmp.cleanup()

    def test_child_loggers(self):
        self.assertEqual(get_logger("decoder").name, f"{ROOT_LOGGER_NAME}.decoder")
        self.assertIs(get_logger("decoder").parent, self.logger)

    def test_setup_is_idempotent(self):
        logger = setup_logging(Path(self.tmp.name), console_level=logging.CRITICAL)
        self.assertEqual(len(logger.handlers), 2)

    def test_dropped_statements_reach_log_file(self):
        load_string('BO_ 1 M: 8 ECU\n SG_ Bad : 0|8@7+ (1,0) [0|1] "" ECU')
        for handler in self.logger.handlers:
            handler.flush()
        text = (Path(self.tmp.name) / f"{ROOT_LOGGER_NAME}.log").read_text(encoding="utf-8")
        self.assertIn("dropped SG_", text)
        self.assertIn("Dropped 1 malformed or unresolvable statements", text)


if __name__ == "__main__":
    unittest.main()
