from .session import SESSION_DEFAULTS, init_state, clear_session

__all__ = ["SESSION_DEFAULTS", "init_state", "clear_session"]
