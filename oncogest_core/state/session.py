import streamlit as st

from oncogest_core.auth import AUTH_KEY

# Central registry for session-state keys used across the app.
SESSION_DEFAULTS = {
    AUTH_KEY: False,
    "report_window": "month",
    "custom_start": None,
    "custom_end": None,
    "show_order_history": False,
}


def init_state(state=None):
    """Initialize session state with defaults."""
    state = st.session_state if state is None else state
    for k, v in SESSION_DEFAULTS.items():
        if k not in state:
            state[k] = v


def clear_session(state=None):
    """Reset session state except authentication."""
    state = st.session_state if state is None else state
    for key in list(state.keys()):
        if key != AUTH_KEY:
            del state[key]

    for k, v in SESSION_DEFAULTS.items():
        if k not in state:
            state[k] = v
