import os
import sys
import unittest

# Add project root to sys.path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from state import Connection, SummitData, SummitGeometry
from summit_store import ConnectionStore, SummitStore


class TestSummitStore(unittest.TestCase):

    def setUp(self):
        self.created = []
        self.store = SummitStore(on_create=self.created.append)

    def test_get_or_create_registers_once(self):
        first = self.store.get_or_create("a")
        second = self.store.get_or_create("a")
        self.assertIs(first, second)
        self.assertEqual([s.id for s in self.created], ["a"])
        self.assertEqual(first.title, "")
        self.assertIsNone(first.x)
        self.assertFalse(first.has_geometry)

    def test_title_change_is_reported_once(self):
        self.assertTrue(self.store.apply_data("a", SummitData(title="Peak", description="one")))
        self.assertFalse(self.store.apply_data("a", SummitData(title="Peak", description="two")))
        summit = self.store.get("a")
        self.assertEqual(summit.title, "Peak")
        # Description is always overwritten
        self.assertEqual(summit.description, "two")

    def test_repeated_geometry_is_a_noop(self):
        geo = SummitGeometry(x=1, y=2, r=3)
        self.assertTrue(self.store.apply_geometry("a", geo))
        change = self.store.apply_geometry("a", geo)
        self.assertFalse(change)
        self.assertFalse(change.x or change.y or change.r)

    def test_radius_only_change_is_reported(self):
        self.store.apply_geometry("a", SummitGeometry(x=1, y=2, r=3))
        change = self.store.apply_geometry("a", SummitGeometry(x=1, y=2, r=4))
        self.assertTrue(change)
        self.assertEqual((change.x, change.y, change.r), (False, False, True))
        self.assertEqual(self.store.get("a").r, 4)


class TestConnectionStore(unittest.TestCase):

    def setUp(self):
        self.summits = SummitStore()
        self.connections = ConnectionStore(self.summits)
        self.summits.get_or_create("a")
        self.summits.get_or_create("b")

    def test_new_connection_is_shared_by_both_endpoints(self):
        created = self.connections.apply_connection(Connection("a", "b", 0.5))
        self.assertIsNotNone(created)
        self.assertIs(self.connections.outgoing("a")["b"], self.connections.incoming("b")["a"])
        self.assertEqual(self.summits.get("a").connections_to, {"b"})
        self.assertEqual(self.summits.get("b").connections_from, {"a"})

    def test_weight_update_visible_from_both_directions(self):
        self.connections.apply_connection(Connection("a", "b", 0.5))
        changed = self.connections.apply_connection(Connection("a", "b", 0.7))
        self.assertEqual(changed.value, 0.7)
        self.assertEqual(self.connections.outgoing("a")["b"].value, 0.7)
        self.assertEqual(self.connections.incoming("b")["a"].value, 0.7)
        self.assertEqual(len(self.connections), 1)

    def test_same_weight_is_unchanged(self):
        self.connections.apply_connection(Connection("a", "b", 0.5))
        self.assertIsNone(self.connections.apply_connection(Connection("a", "b", 0.5)))

    def test_unknown_endpoints_are_dropped(self):
        self.assertIsNone(self.connections.apply_connection(Connection("x", "y", 1)))
        self.assertIsNone(self.connections.apply_connection(Connection("a", "y", 1)))
        self.assertEqual(len(self.connections), 0)
        self.assertEqual(self.connections.outgoing("a"), {})
        self.assertNotIn("x", self.summits)
        self.assertNotIn("y", self.summits)

    def test_reverse_direction_is_a_separate_edge(self):
        self.connections.apply_connection(Connection("a", "b", 0.5))
        self.connections.apply_connection(Connection("b", "a", 0.2))
        self.assertEqual(len(self.connections), 2)
        self.assertEqual([c.key for c in self.connections.incident("a")], [("a", "b"), ("b", "a")])

    def test_incident_lists_self_loop_once(self):
        self.connections.apply_connection(Connection("a", "a", 1.0))
        self.assertEqual([c.key for c in self.connections.incident("a")], [("a", "a")])

    def test_snapshot(self):
        self.connections.apply_connection(Connection("a", "b", 0.5))
        self.assertEqual(self.connections.snapshot(), [{"from": "a", "to": "b", "value": 0.5}])
        self.assertEqual(self.summits.snapshot()["a"]["connections"], {"to": ["b"], "from": []})


if __name__ == '__main__':
    unittest.main()
