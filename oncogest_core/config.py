# =============================================================================
# oncogest_core/config.py
# Settings loaded from Streamlit secrets with environment fallback
# =============================================================================
"""
Runtime settings for OncoGest.

Expected secrets in .streamlit/secrets.toml:
    [supabase]
    url = "https://your-project.supabase.co"
    key = "your-anon-key"

    [auth]
    password = "shared-secret"

    [local]
    db_path = "local_data/oncogest.db"

Each value can also come from the environment (SUPABASE_URL, SUPABASE_KEY,
ONCOGEST_PASSWORD, ONCOGEST_LOCAL_DB). ONCOGEST_FORCE_OFFLINE=1 forces the
local fallback store regardless of connectivity.
"""

from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import streamlit as st

from oncogest_core.errors import ConfigurationError
from oncogest_core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_LOCAL_DB = Path("local_data") / "oncogest.db"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one session."""
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    shared_secret: Optional[str] = None
    local_db_path: Path = DEFAULT_LOCAL_DB
    force_offline: bool = False

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def _read_secrets() -> Dict[str, Dict[str, Any]]:
    """
    Read the sections we care about from st.secrets.

    A missing secrets.toml is normal for local runs, so any failure here
    yields an empty mapping.
    """
    sections = {}
    try:
        for section in ("supabase", "auth", "local"):
            if section in st.secrets:
                sections[section] = dict(st.secrets[section])
    except Exception as e:
        logger.debug(f"Streamlit secrets unavailable: {e}")
    return sections


def load_settings(
    secrets: Optional[Mapping[str, Mapping[str, Any]]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Build Settings from secrets first, then environment variables.

    Args:
        secrets: Secrets sections (defaults to st.secrets)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Frozen Settings instance
    """
    secrets = _read_secrets() if secrets is None else secrets
    environ = os.environ if environ is None else environ

    supabase = secrets.get("supabase", {})
    auth = secrets.get("auth", {})
    local = secrets.get("local", {})

    url = supabase.get("url") or environ.get("SUPABASE_URL") or None
    key = supabase.get("key") or environ.get("SUPABASE_KEY") or None

    if url and not str(url).startswith(("http://", "https://")):
        raise ConfigurationError(
            f"Supabase URL must start with http:// or https://, got {url!r}",
            config_key="supabase.url",
            expected_type="url",
        )

    db_path = local.get("db_path") or environ.get("ONCOGEST_LOCAL_DB")

    return Settings(
        supabase_url=url,
        supabase_key=key,
        shared_secret=auth.get("password") or environ.get("ONCOGEST_PASSWORD") or None,
        local_db_path=Path(db_path) if db_path else DEFAULT_LOCAL_DB,
        force_offline=str(environ.get("ONCOGEST_FORCE_OFFLINE", "")).lower() in _TRUTHY,
    )
