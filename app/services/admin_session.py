"""
Admin session flag kept in the local mirror, per client session
(adminLoggedIn_<client id> / adminLoginTime_<client id>).

A login is valid for a fixed window (24 hours by default); an expired or
half-written session is cleared on the next check.
"""

import hmac
import logging
import time
from datetime import datetime, timedelta
from typing import Callable, Optional

from app.services.local_store import LocalStore, ADMIN_FLAG_KEY, ADMIN_TIME_KEY

logger = logging.getLogger(__name__)


class AdminSession:
    def __init__(
        self,
        local: LocalStore,
        password: str,
        client_id: str,
        lifetime_hours: int = 24,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.local = local
        self._password = password
        self.flag_key = f"{ADMIN_FLAG_KEY}_{client_id}"
        self.time_key = f"{ADMIN_TIME_KEY}_{client_id}"
        self.lifetime = timedelta(hours=lifetime_hours)
        self._clock = clock or time.time

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def login(self, password: str) -> bool:
        if not hmac.compare_digest(password.encode("utf-8"), self._password.encode("utf-8")):
            logger.warning("Admin login rejected")
            return False

        self.local.set_item(self.flag_key, True)
        self.local.set_item(self.time_key, self._now_ms())
        logger.info("Admin logged in")
        return True

    def logout(self) -> None:
        self.local.remove_item(self.flag_key)
        self.local.remove_item(self.time_key)
        logger.info("Admin logged out")

    def login_time(self) -> Optional[datetime]:
        stamp = self.local.get_item(self.time_key)
        if stamp is None:
            return None
        return datetime.fromtimestamp(int(stamp) / 1000)

    def is_active(self) -> bool:
        logged_in = self.local.get_item(self.flag_key)
        stamp = self.local.get_item(self.time_key)

        if not logged_in or stamp is None:
            if logged_in or stamp is not None:
                self.logout()
            return False

        age_ms = self._now_ms() - int(stamp)
        if age_ms > self.lifetime.total_seconds() * 1000:
            logger.info("Admin session expired")
            self.logout()
            return False

        return True
