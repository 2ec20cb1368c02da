from __future__ import annotations

import logging

from openform.config import STORAGE_BACKENDS, Settings
from openform.protocols import Storage
from openform.repo_json import JSONStorage
from openform.repo_sqlite import SQLiteStorage

logger = logging.getLogger(__name__)


def init_storage(settings: Settings) -> Storage:
    backend = settings.storage_backend
    if backend not in STORAGE_BACKENDS:
        raise ValueError(f"unknown STORAGE_BACKEND: {backend}")
    if backend == "json":
        logger.info("Using JSON storage at %s", settings.json_path)
        return JSONStorage(settings.json_path)
    logger.info("Using SQLite storage at %s", settings.sqlite_path)
    return SQLiteStorage(settings.sqlite_path)
