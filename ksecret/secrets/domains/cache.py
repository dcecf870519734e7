"""Local secret cache for ksecret.

Secret values fetched by `ksecret get` are kept for a fixed five minutes in a
single JSON file:
~/.config/ksecret/cache.json (or $KSECRET_CACHE_FILE)

The whole document is read once and rewritten on save. There is no locking;
two processes sharing the file race and the later save wins.
"""
import json
import os
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, Any, Optional

from .config_loader import get_config_dir
from .errors import CachePersistenceError

logger = logging.getLogger(__name__)

CACHE_FILE_ENV = "KSECRET_CACHE_FILE"
CACHE_FILE_NAME = "cache.json"
CACHE_TTL = timedelta(seconds=300)


def get_cache_path() -> Path:
    """Cache file path, KSECRET_CACHE_FILE taking priority over the default location."""
    override = os.getenv(CACHE_FILE_ENV)
    if override:
        return Path(override)
    return get_config_dir() / CACHE_FILE_NAME


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _cache_key(environment: str, name: str) -> str:
    return f"{environment}:{name}"


class SecretCache:
    """TTL cache of secret values keyed by environment and name."""

    def __init__(self, path: Optional[Path] = None, clock: Optional[Callable[[], datetime]] = None):
        self.path = Path(path) if path is not None else get_cache_path()
        self._clock = clock or _utcnow
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._loaded = False

    def load(self) -> None:
        """
        Load the cache file into memory.

        A missing file is an empty cache. A file that cannot be decoded is also
        treated as empty.

        Raises:
            CachePersistenceError: If the file exists but cannot be read
        """
        self._entries = {}
        self._loaded = True

        if not self.path.exists():
            return

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except (ValueError, RecursionError) as e:
            # ValueError covers JSONDecodeError and UnicodeDecodeError
            logger.warning(f"Ignoring corrupt cache file {self.path}: {e}")
            return
        except OSError as e:
            raise CachePersistenceError(f"Failed to read cache file {self.path}: {e}") from e

        self._entries = self._parse_entries(document)

    def _parse_entries(self, document: Any) -> Dict[str, Dict[str, Any]]:
        entries = document.get("entries") if isinstance(document, dict) else None
        if not isinstance(entries, dict):
            logger.warning(f"Ignoring cache file {self.path} with unexpected layout")
            return {}

        parsed = {}
        for key, entry in entries.items():
            try:
                expires_at = datetime.fromisoformat(entry["expires_at"])
                value = entry["value"]
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Ignoring corrupt cache file {self.path}: {e}")
                return {}
            if not isinstance(value, str):
                logger.warning(f"Ignoring corrupt cache file {self.path}: non-string value")
                return {}
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            parsed[key] = {"value": value, "expires_at": expires_at}
        return parsed

    def save(self) -> None:
        """
        Write the whole in-memory cache to disk, replacing the file.

        Raises:
            CachePersistenceError: If the file cannot be written
        """
        document = {
            "entries": {
                key: {"value": entry["value"], "expires_at": entry["expires_at"].isoformat()}
                for key, entry in self._entries.items()
            }
        }

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(document, f)
        except OSError as e:
            raise CachePersistenceError(f"Failed to save cache to {self.path}: {e}") from e

    def ensure_loaded(self) -> None:
        """Load the cache file unless it was already loaded."""
        if not self._loaded:
            self.load()

    def get(self, environment: str, name: str) -> Optional[str]:
        """
        Return the cached value, or None if missing or expired.

        Expired entries are left in place until overwritten or cleared.
        """
        self.ensure_loaded()
        entry = self._entries.get(_cache_key(environment, name))
        if entry is None:
            return None
        if self._clock() < entry["expires_at"]:
            return entry["value"]
        return None

    def set(self, environment: str, name: str, value: str) -> None:
        self.ensure_loaded()
        self._entries[_cache_key(environment, name)] = {
            "value": value,
            "expires_at": self._clock() + CACHE_TTL,
        }

    def delete(self, environment: str, name: str) -> bool:
        """Remove an entry. Returns True if one was present."""
        self.ensure_loaded()
        return self._entries.pop(_cache_key(environment, name), None) is not None

    def clear(self) -> int:
        """Remove every entry. Returns the number removed."""
        self.ensure_loaded()
        count = len(self._entries)
        self._entries.clear()
        return count
