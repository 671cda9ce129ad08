# =============================================================================
# tests/unit/test_session_gate.py
# Unit tests for the shared-secret gate and session defaults
# =============================================================================

from pathlib import Path

from oncogest_core.auth import AUTH_KEY, SessionGate
from oncogest_core.state import SESSION_DEFAULTS, clear_session, init_state


class TestSessionGate:
    """Tests for unlocking and locking a session"""

    def test_correct_secret_unlocks(self):
        state = {}
        gate = SessionGate("farmacia", state)

        assert not gate.is_authenticated
        assert gate.check("farmacia")
        assert gate.is_authenticated
        assert state[AUTH_KEY] is True

    def test_wrong_secret_keeps_gate_closed(self):
        state = {}
        gate = SessionGate("farmacia", state)

        assert not gate.check("Farmacia")
        assert not gate.is_authenticated

    def test_missing_secret_never_unlocks(self):
        gate = SessionGate(None, {})
        assert not gate.check("")
        assert not gate.is_authenticated

    def test_logout(self):
        state = {}
        gate = SessionGate("farmacia", state)
        gate.check("farmacia")
        gate.logout()

        assert not gate.is_authenticated


class TestSessionState:
    """Tests for session defaults"""

    def test_init_state_fills_missing_keys_only(self):
        state = {"report_window": "year"}
        init_state(state)

        assert state["report_window"] == "year"
        assert set(SESSION_DEFAULTS) <= set(state)
        assert state[AUTH_KEY] is False

    def test_clear_session_keeps_authentication(self):
        state = {AUTH_KEY: True, "report_window": "week", "record_gateway": object()}
        clear_session(state)

        assert state[AUTH_KEY] is True
        assert state["report_window"] == "month"
        assert "record_gateway" not in state

    def test_every_default_is_bound_to_a_widget(self):
        app_source = (Path(__file__).resolve().parents[2] / "app.py").read_text(encoding="utf-8")

        for key in SESSION_DEFAULTS:
            if key == AUTH_KEY:
                continue
            assert f'key="{key}"' in app_source, key
