"""
Unit tests for session persistence.
"""

import json
import random
import shutil
import tempfile
import unittest

from business_logic.planning_session import PlanningSession
from config.settings import AppConfig
from data.session_store import SessionStore, context_to_dict, context_from_dict
from models.data_models import ActionPayload, SideEffectAction, Stage


class TestSessionStore(unittest.TestCase):
    """Test cases for SessionStore class."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.store = SessionStore(self.temp_dir)

        self.session = PlanningSession(config=AppConfig(), rng=random.Random(42), session_id="acme-1")
        self.session.process_input("Create plan for Acme ($500k)")
        self.session.process_input("Apply 70/20/10 Rule")
        self.session.process_input("pause row 2")
        self.session.process_input("export pdf")
        self.session.process_input("create campaign for Globex")

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_round_trip(self):
        """Test that a saved session restores identically."""
        self.store.save("acme-1", self.session.context)
        restored = self.store.load("acme-1")

        self.assertEqual(restored, self.session.context)
        self.assertEqual(restored.stage, Stage.REFINEMENT)

    def test_actions_survive_round_trip(self):
        """Test that both kinds of side-effect actions are restored."""
        restored = context_from_dict(json.loads(json.dumps(context_to_dict(self.session.context))))
        actions = [m.side_effect_action for m in restored.history if m.side_effect_action is not None]

        self.assertIn(SideEffectAction.EXPORT_PDF, actions)
        self.assertTrue(any(isinstance(a, ActionPayload) for a in actions))

    def test_restored_session_continues(self):
        """Test that a restored context drives a new session."""
        self.store.save("acme-1", self.session.context)
        resumed = PlanningSession(
            config=AppConfig(), rng=random.Random(1),
            context=self.store.load("acme-1"), session_id="acme-1"
        )
        resumed.process_input("resume row 2")
        self.assertEqual(resumed.plan.line_items[1].status.value, "ACTIVE")

    def test_load_missing_session(self):
        """Test loading a session that was never saved."""
        self.assertIsNone(self.store.load("missing"))

    def test_invalid_session_id(self):
        """Test that ids with path separators are rejected."""
        with self.assertRaises(ValueError):
            self.store.save("../escape", self.session.context)

    def test_corrupt_file(self):
        """Test that an unreadable snapshot raises."""
        with open(self.store.store_dir / "broken.json", 'w') as f:
            f.write("{not json")

        with self.assertRaises(json.JSONDecodeError):
            self.store.load("broken")

    def test_delete_and_list(self):
        """Test deleting and listing sessions."""
        self.store.save("first", self.session.context)
        self.store.save("second", self.session.context)

        self.assertEqual(sorted(self.store.list_sessions()), ["first", "second"])
        self.assertTrue(self.store.delete("first"))
        self.assertFalse(self.store.delete("first"))
        self.assertEqual(self.store.list_sessions(), ["second"])


if __name__ == '__main__':
    unittest.main()
