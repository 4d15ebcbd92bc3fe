"""Elysian configuration and credential helpers.

Settings live in ``~/.elysian/config.json``; the Gemini API key is read
from the environment or the macOS Keychain every time it is needed so a
fixed key takes effect on the next call.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Callable, Optional, Sequence

logger = logging.getLogger(__name__)

ELYSIAN_HOME = Path(os.environ.get("ELYSIAN_HOME", Path.home() / ".elysian"))
DEFAULT_CONFIG_PATH = ELYSIAN_HOME / "config.json"
DEFAULT_STORE_PATH = ELYSIAN_HOME / "store.json"

KEYCHAIN_SERVICE = "elysian"
KEYCHAIN_ACCOUNT = "gemini"
API_KEY_ENV_VARS = ("API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY")


@dataclass
class ElysianConfig:
    fast_model: str = "gemini-3-flash-preview"
    deep_model: str = "gemini-3-pro-preview"
    blueprint_model: str = "gemini-3-flash-preview"
    speech_model: str = "gemini-2.5-flash-preview-tts"
    voice_name: str = "Kore"
    thinking_budget: int = 32768
    request_timeout: float = 120.0
    speech_timeout: float = 60.0
    # 0 keeps the whole conversation in the blueprint prompt
    blueprint_history_messages: int = 0
    voice_language: str = "en-US"
    voice_continuous: bool = True
    store_path: str = field(default_factory=lambda: str(DEFAULT_STORE_PATH))

    @classmethod
    def from_dict(cls, data: dict) -> "ElysianConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.debug("Ignoring unknown config keys: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})


def config_path() -> Path:
    env_path = os.environ.get("ELYSIAN_CONFIG")
    return Path(env_path).expanduser() if env_path else DEFAULT_CONFIG_PATH


def load_config(path: Optional[Path] = None) -> ElysianConfig:
    """Load config from disk, falling back to defaults."""
    path = path or config_path()
    if path.exists():
        try:
            data = json.loads(path.read_text())
            if isinstance(data, dict):
                return ElysianConfig.from_dict(data)
            logger.warning("Config %s is not a JSON object, using defaults", path)
        except (json.JSONDecodeError, OSError, TypeError) as e:
            logger.warning("Could not read config %s: %s", path, e)
    return ElysianConfig()


# ══════════════════════════════════════════════════════════════════
# Credentials
# ══════════════════════════════════════════════════════════════════

def mask_key(key: str) -> str:
    if len(key) <= 8:
        return "…"
    return f"{key[:4]}…{key[-4:]}"


def _keychain_lookup(account: str) -> Optional[str]:
    try:
        result = subprocess.run(
            ["security", "find-generic-password", "-a", account, "-s", KEYCHAIN_SERVICE, "-w"],
            capture_output=True, text=True,
        )
    except FileNotFoundError:
        return None
    if result.returncode == 0 and result.stdout.strip():
        return result.stdout.strip()
    return None


def get_api_key(env_vars: Sequence[str] = API_KEY_ENV_VARS) -> Optional[str]:
    """Load the Gemini API key from the environment or macOS Keychain.

    Checks env vars in order first, then Keychain (set via `elysian set-key`).
    """
    for name in env_vars:
        key = os.environ.get(name, "").strip()
        if key:
            return key
    return _keychain_lookup(KEYCHAIN_ACCOUNT)


def store_api_key(key: str) -> bool:
    """Store the Gemini API key in macOS Keychain. Returns True on success."""
    try:
        subprocess.run(
            ["security", "delete-generic-password", "-a", KEYCHAIN_ACCOUNT, "-s", KEYCHAIN_SERVICE],
            capture_output=True,
        )
        result = subprocess.run(
            ["security", "add-generic-password", "-a", KEYCHAIN_ACCOUNT, "-s", KEYCHAIN_SERVICE, "-w", key],
            capture_output=True, text=True,
        )
    except FileNotFoundError:
        logger.error("macOS Keychain is not available; export API_KEY instead")
        return False
    if result.returncode != 0:
        logger.error("Failed to store key in Keychain: %s", result.stderr.strip())
        return False
    return True


class CredentialSource:
    """Lazy API key accessor. Every call re-reads the underlying source."""

    def __init__(self, loader: Callable[[], Optional[str]] = get_api_key):
        self._loader = loader

    def __call__(self) -> Optional[str]:
        key = self._loader()
        return key.strip() if key and key.strip() else None

    @classmethod
    def static(cls, key: Optional[str]) -> "CredentialSource":
        return cls(lambda: key)
