"""Local theme preference, stored apart from task data."""

import json
import logging
from pathlib import Path

from src.core.config import constants, settings


logger = logging.getLogger(__name__)


class ThemePreferenceStore:
    """Persists the dark/light theme choice as one boolean in a local JSON file.

    The value is read once at construction and written back on every change.
    A missing or unreadable file means light theme.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path or settings.preferences_path)
        self._dark_mode = self._load()

    @property
    def dark_mode(self) -> bool:
        return self._dark_mode

    def _load(self) -> bool:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return False
        except (OSError, ValueError) as e:
            logger.warning("Could not read preferences, using light theme", extra={"error": str(e)})
            return False

        if not isinstance(data, dict):
            return False
        return data.get(constants.THEME_PREFERENCE_KEY) is True

    def set_dark_mode(self, enabled: bool) -> bool:
        """Store the theme choice and return it."""
        data: dict[str, object] = {}
        if self._path.exists():
            try:
                loaded = json.loads(self._path.read_text(encoding="utf-8"))
                if isinstance(loaded, dict):
                    data = loaded
            except (OSError, ValueError):
                data = {}

        data[constants.THEME_PREFERENCE_KEY] = enabled
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        self._dark_mode = enabled

        logger.info("Theme preference saved", extra={"dark_mode": enabled})
        return enabled

    def toggle(self) -> bool:
        return self.set_dark_mode(not self._dark_mode)
