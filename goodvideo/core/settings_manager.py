"""
Settings Manager
Handles persistent crawler settings in the user data directory
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional
import threading

from ..models.search_context import DEFAULT_END_PAGE, DEFAULT_SEARCH_URL, DEFAULT_START_PAGE


LOGGER = logging.getLogger(__name__)


class SettingsManager:
    """Manages crawler settings with persistence"""

    DEFAULT_SETTINGS = {
        # Crawl
        "search_url": DEFAULT_SEARCH_URL,
        "heat_threshold": 50,
        "start_page": DEFAULT_START_PAGE,
        "end_page": DEFAULT_END_PAGE,

        # Politeness
        "detail_concurrency": 4,
        "listing_page_delay_seconds": 2.0,
        "detail_pacing_seconds": 0.5,

        # HTTP
        "request_timeout_seconds": 45.0,
        "request_max_attempts": 4,
        "retry_delay_seconds": 2.0,
        "rate_limit_retry_delay_seconds": 10.0,
        "user_agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
        ),
        "accept_language": "zh-CN,zh;q=0.9,en;q=0.8",
    }

    def __init__(self, settings_file: Optional[Path] = None):
        if settings_file is None:
            data_dir = str(os.environ.get("GOODVIDEO_DATA_DIR", "") or "").strip()
            settings_dir = Path(data_dir).expanduser() if data_dir else (Path.home() / ".goodvideo")
            settings_file = settings_dir / "settings.json"
        self.settings_file = Path(settings_file)
        self.settings_dir = self.settings_file.parent

        self._lock = threading.RLock()
        self._settings: Dict[str, Any] = {}
        self._load()

    def _load(self):
        """Load settings from file"""
        with self._lock:
            if self.settings_file.exists():
                try:
                    with open(self.settings_file, "r", encoding="utf-8") as f:
                        loaded = json.load(f)
                    if not isinstance(loaded, dict):
                        raise ValueError("settings root must be an object")
                    # Merge with defaults (adds new keys if they don't exist)
                    self._settings = {**self.DEFAULT_SETTINGS, **loaded}
                except (OSError, ValueError) as e:
                    LOGGER.error("Error loading settings from %s: %s", self.settings_file, e)
                    self._settings = self.DEFAULT_SETTINGS.copy()
            else:
                self._settings = self.DEFAULT_SETTINGS.copy()

    def _save(self):
        """Save settings to file"""
        with self._lock:
            try:
                self.settings_dir.mkdir(parents=True, exist_ok=True)
                with open(self.settings_file, "w", encoding="utf-8") as f:
                    json.dump(self._settings, f, indent=2, ensure_ascii=False)
            except OSError as e:
                LOGGER.error("Error saving settings to %s: %s", self.settings_file, e)

    def get(self, key: str, default=None) -> Any:
        """Get a setting value"""
        with self._lock:
            return self._settings.get(key, default)

    def set(self, key: str, value: Any):
        """Set a setting value and save"""
        with self._lock:
            self._settings[str(key)] = value
            self._save()

    def update(self, settings_dict: Dict[str, Any]):
        """Update multiple settings at once"""
        with self._lock:
            self._settings.update(dict(settings_dict or {}))
            self._save()

    def get_all(self) -> Dict[str, Any]:
        """Get all settings"""
        with self._lock:
            return self._settings.copy()

    def reset(self):
        """Reset to default settings"""
        with self._lock:
            self._settings = self.DEFAULT_SETTINGS.copy()
            self._save()
