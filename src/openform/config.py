from __future__ import annotations

import os
from datetime import tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

STORAGE_BACKENDS = {"sqlite", "json"}
DEFAULT_POLL_INTERVAL = 10.0


class Settings:
    def __init__(self) -> None:
        self.storage_backend = os.getenv("STORAGE_BACKEND", "sqlite").lower()
        self.sqlite_path = Path(os.getenv("SQLITE_PATH", "./data/app.db"))
        self.json_path = Path(os.getenv("JSON_PATH", "./data/jsonstore.json"))
        self.host = os.getenv("HOST", "0.0.0.0")
        port_value = os.getenv("PORT", "8000")
        try:
            self.port = int(port_value)
        except ValueError:
            self.port = 8000
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        interval_value = os.getenv("POLL_INTERVAL", "")
        try:
            self.poll_interval = float(interval_value) if interval_value else DEFAULT_POLL_INTERVAL
        except ValueError:
            self.poll_interval = DEFAULT_POLL_INTERVAL
        self.export_timezone = os.getenv("EXPORT_TIMEZONE", "").strip()

    def export_tz(self) -> tzinfo | None:
        """Timezone used for the "Submitted At" column; ``None`` means local time."""
        if not self.export_timezone:
            return None
        try:
            return ZoneInfo(self.export_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            return None


def ensure_dirs(settings: Settings) -> None:
    settings.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
    settings.json_path.parent.mkdir(parents=True, exist_ok=True)
