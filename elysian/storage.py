"""Local key-value persistence for the profile and the latest blueprint.

Values are opaque strings kept in one JSON file. Last write wins; there is
no versioning.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from pydantic import ValidationError

from elysian.models import RestorationBlueprint, UserProfile

logger = logging.getLogger(__name__)

PROFILE_KEY = "elysian_profile"
BLUEPRINT_KEY = "elysian_blueprint"


class LocalStore:
    """Manages the local JSON blob store."""

    def __init__(self, path: Path | str):
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Store %s is unreadable, treating as empty: %s", self._path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Store %s is not a JSON object, treating as empty", self._path)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: Dict[str, str]):
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(self._path)

    def get(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set(self, key: str, value: str):
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def delete(self, key: str):
        data = self._read_all()
        if data.pop(key, None) is not None:
            self._write_all(data)


def load_profile(store: LocalStore) -> Optional[UserProfile]:
    raw = store.get(PROFILE_KEY)
    if not raw:
        return None
    try:
        return UserProfile.from_json(raw)
    except ValidationError as e:
        logger.warning("Stored profile is invalid, ignoring: %s", e)
        return None


def save_profile(store: LocalStore, profile: UserProfile):
    store.set(PROFILE_KEY, profile.to_json())


def load_blueprint(store: LocalStore) -> Optional[RestorationBlueprint]:
    raw = store.get(BLUEPRINT_KEY)
    if not raw:
        return None
    try:
        return RestorationBlueprint.from_json(raw)
    except ValidationError as e:
        logger.warning("Stored blueprint is invalid, ignoring: %s", e)
        return None


def save_blueprint(store: LocalStore, blueprint: RestorationBlueprint):
    store.set(BLUEPRINT_KEY, blueprint.to_json())
