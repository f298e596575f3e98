"""
Store access with an offline fallback.

Every read goes to the store first; when the store fails (or is empty)
the last collection mirrored into the local cache is served instead.
Writes always land in the cache, then in the store.
"""
from __future__ import annotations
import json
import logging
from typing import Any, Callable, Dict, List, Optional

from .constants import DEBOUNCE_SECONDS, STORAGE_KEYS
from .debounce import Debouncer
from .store import FileStore, LocalCache

logger = logging.getLogger(__name__)

DEFAULT_THEME = "light"


class DataService:
    def __init__(self, store: FileStore, cache: LocalCache):
        self.store = store
        self.cache = cache
        self.online = True

    def _cached_records(self) -> Optional[List[Dict[str, Any]]]:
        raw = self.cache.get_item(STORAGE_KEYS["student_data"])
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.error("Cached student data is not valid JSON")
            return None
        return data if isinstance(data, list) else None

    def _mirror(self, records: List[Dict[str, Any]]) -> None:
        try:
            self.cache.set_item(STORAGE_KEYS["student_data"], json.dumps(records, ensure_ascii=False))
        except OSError:
            logger.exception("Could not write local cache")

    def load_data(self) -> Optional[List[Dict[str, Any]]]:
        try:
            records = self.store.get_all()
        except (OSError, ValueError):
            logger.exception("Store unavailable, serving cached data")
            self.online = False
            return self._cached_records()

        self.online = True
        if records:
            self._mirror(records)
            return records
        return self._cached_records()

    def save_data(self, records: List[Dict[str, Any]]) -> bool:
        self._mirror(records)
        ok = self.store.bulk_save(records)
        self.online = ok
        return ok

    def clear_data(self) -> bool:
        try:
            self.cache.remove_item(STORAGE_KEYS["student_data"])
        except OSError:
            logger.exception("Could not clear local cache")
        return self.store.delete_all()

    def load_theme(self) -> str:
        theme = self.store.get_settings().get("theme")
        if theme:
            try:
                self.cache.set_item(STORAGE_KEYS["theme"], theme)
            except OSError:
                logger.exception("Could not write local cache")
            return theme
        return self.cache.get_item(STORAGE_KEYS["theme"]) or DEFAULT_THEME

    def save_theme(self, theme: str) -> bool:
        try:
            self.cache.set_item(STORAGE_KEYS["theme"], theme)
        except OSError:
            logger.exception("Could not write local cache")
        return self.store.update_settings({"theme": theme})

    def subscribe(
        self,
        callback: Callable[[List[Dict[str, Any]]], None],
        wait: float = DEBOUNCE_SECONDS,
    ) -> Callable[[], None]:
        """
        Live feed: each push is mirrored to the cache at once, and bursts of
        pushes reach `callback` once, with the last collection.
        Returns the unsubscribe function.
        """
        debounced = Debouncer(callback, wait)

        def on_push(records: List[Dict[str, Any]]) -> None:
            self._mirror(records)
            debounced(records)

        unsubscribe = self.store.subscribe(on_push)

        def stop() -> None:
            unsubscribe()
            debounced.cancel()

        return stop
