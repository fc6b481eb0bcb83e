import unittest
import sys
from pathlib import Path

# Add src to path to allow imports
sys.path.append(str(Path(__file__).parent.parent / "src"))

from can_dbc.core.arena import Arena, MessageKey, NodeKey


class TestArena(unittest.TestCase):
    def setUp(self):
        self.arena = Arena(NodeKey)

    def test_insert_and_get(self):
        key = self.arena.insert("a")
        self.assertIsInstance(key, NodeKey)
        self.assertEqual(self.arena.get(key), "a")
        self.assertIn(key, self.arena)
        self.assertEqual(len(self.arena), 1)

    def test_removed_key_is_stale(self):
        key = self.arena.insert("a")
        self.assertEqual(self.arena.remove(key), "a")
        self.assertIsNone(self.arena.get(key))
        self.assertNotIn(key, self.arena)
        self.assertEqual(len(self.arena), 0)

    def test_reused_slot_does_not_resolve_old_key(self):
        old = self.arena.insert("a")
        self.arena.remove(old)
        new = self.arena.insert("b")
        self.assertEqual(new.index, old.index)
        self.assertNotEqual(new, old)
        self.assertIsNone(self.arena.get(old))
        self.assertEqual(self.arena.get(new), "b")

    def test_foreign_key_type_does_not_resolve(self):
        key = self.arena.insert("a")
        self.assertIsNone(self.arena.get(MessageKey(key.index, key.generation)))

    def test_remove_twice(self):
        key = self.arena.insert("a")
        self.arena.remove(key)
        self.assertIsNone(self.arena.remove(key))
        self.assertEqual(len(self.arena), 0)

    def test_items_skip_free_slots(self):
        keys = [self.arena.insert(value) for value in "abc"]
        self.arena.remove(keys[1])
        self.assertEqual([value for _, value in self.arena.items()], ["a", "c"])
        self.assertEqual([key for key, _ in self.arena.items()], [keys[0], keys[2]])

    def test_get_none(self):
        self.assertIsNone(self.arena.get(None))


if __name__ == "__main__":
    unittest.main()
