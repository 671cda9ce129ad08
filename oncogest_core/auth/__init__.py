"""
Session gate for the OncoGest app.

⚠️ PROTOTYPE ONLY - a shared secret checked in the app process.
"""

from .session_gate import AUTH_KEY, SessionGate

__all__ = ["AUTH_KEY", "SessionGate"]
