"""
Shared-secret session gate for OncoGest.

⚠️ ADVISORY ONLY - NOT A SECURITY BOUNDARY
A single password shared by the whole pharmacy team is compared against
user input and a session flag is set on success. Anyone who can read the
configuration can read the secret.
"""

import hmac
from typing import MutableMapping, Optional

import streamlit as st

from oncogest_core.logging import get_logger

logger = get_logger(__name__)

AUTH_KEY = "authenticated"


class SessionGate:
    """
    Tracks whether the current session has entered the shared secret.

    Args:
        secret: Expected password; None keeps the gate closed
        state: Session mapping (default: st.session_state)
    """

    def __init__(self, secret: Optional[str], state: Optional[MutableMapping] = None):
        self._secret = secret
        self._state = st.session_state if state is None else state

    @property
    def is_authenticated(self) -> bool:
        return bool(self._state.get(AUTH_KEY, False))

    def check(self, attempt: str) -> bool:
        """
        Compare attempt with the secret and open the session on a match.

        Returns:
            True if the attempt matched
        """
        if not self._secret:
            logger.warning("Login attempted but no shared secret is configured")
            return False

        matched = hmac.compare_digest(attempt.encode("utf-8"), self._secret.encode("utf-8"))
        if matched:
            self._state[AUTH_KEY] = True
            logger.info("Session unlocked")
        else:
            logger.info("Rejected login attempt")
        return matched

    def logout(self) -> None:
        """End the session."""
        self._state[AUTH_KEY] = False
        logger.info("Session locked")
