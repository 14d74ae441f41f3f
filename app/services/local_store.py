"""
Local Mirror Store with Concurrency Control

File-backed key/value store holding JSON-encoded entries, one file per key:
- restaurant_menu: menu item mirror
- restaurant_orders: order mirror
- restaurant_cart_<client>: cart per client session (item id -> quantity)
- adminLoggedIn_<client> / adminLoginTime_<client>: admin session flag and timestamp

Each entry is guarded by its own FileLock and written atomically.

Author: Khalil Bannouri
Version: 4.0.0
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

from filelock import FileLock, Timeout

logger = logging.getLogger(__name__)

MENU_KEY = "restaurant_menu"
ORDERS_KEY = "restaurant_orders"
CART_KEY = "restaurant_cart"
ADMIN_FLAG_KEY = "adminLoggedIn"
ADMIN_TIME_KEY = "adminLoginTime"


class LocalStoreError(Exception):
    """Local entry could not be read or written."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"{key}: {message}")


class LocalStore:
    """Thread- and process-safe JSON entry store."""

    def __init__(self, directory: Union[Path, str], lock_timeout: float = 10.0):
        self.directory = Path(directory)
        self.lock_timeout = lock_timeout

    def ensure_data_dir(self) -> None:
        """Create data directory if needed."""
        if not self.directory.exists():
            self.directory.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {self.directory}")

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _lock(self, key: str) -> FileLock:
        return FileLock(str(self.directory / f"{key}.json.lock"), timeout=self.lock_timeout)

    def get_item(self, key: str) -> Optional[Any]:
        """Decoded entry, or None when the key was never written."""
        path = self._path(key)
        if not path.exists():
            return None

        try:
            with self._lock(key):
                raw = path.read_text(encoding="utf-8")
        except Timeout:
            raise LocalStoreError(key, f"lock not acquired within {self.lock_timeout}s")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise LocalStoreError(key, str(e)) from e

        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise LocalStoreError(key, f"corrupt entry ({e})") from e

    def set_item(self, key: str, value: Any) -> None:
        """Replace the entry; readers never see a half-written file."""
        try:
            self.ensure_data_dir()
        except OSError as e:
            raise LocalStoreError(key, f"data directory unavailable ({e})") from e

        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")

        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise LocalStoreError(key, f"not JSON serializable ({e})") from e

        try:
            with self._lock(key):
                tmp_path.write_text(payload, encoding="utf-8")
                os.replace(tmp_path, path)
        except Timeout:
            raise LocalStoreError(key, f"lock not acquired within {self.lock_timeout}s")
        except OSError as e:
            raise LocalStoreError(key, str(e)) from e

        logger.debug(f"Local entry '{key}' written ({len(payload)} bytes)")

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        if not path.exists():
            return

        try:
            with self._lock(key):
                path.unlink(missing_ok=True)
        except Timeout:
            raise LocalStoreError(key, f"lock not acquired within {self.lock_timeout}s")
        except OSError as e:
            raise LocalStoreError(key, str(e)) from e

        logger.debug(f"Local entry '{key}' removed")

    def clear(self) -> None:
        """Remove every entry (for testing/reset purposes)."""
        if not self.directory.exists():
            return
        for path in list(self.directory.glob("*.json")):
            self.remove_item(path.stem)
        logger.info("Local mirror cleared")
