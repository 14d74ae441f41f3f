"""
Connection-health probe for the advisory "remote connected" banner.

The routing in DataAccessLayer never reads this state; every call re-checks
configuration and handles its own failures.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Optional

from app.services.remote.base import BaseRemoteService, remote_ready

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    UNKNOWN = "unknown"
    REACHABLE = "reachable"
    UNREACHABLE = "unreachable"


class ConnectionProbe:
    def __init__(self, remote: Optional[BaseRemoteService]):
        self.remote = remote
        self.state = ConnectionState.UNKNOWN
        self.checked_at: Optional[datetime] = None

    async def check(self) -> ConnectionState:
        if not remote_ready(self.remote):
            self.state = ConnectionState.UNREACHABLE
        else:
            try:
                reachable = await self.remote.health_check()
            except Exception as e:
                logger.error(f"Connection check failed: {e}")
                reachable = False
            self.state = ConnectionState.REACHABLE if reachable else ConnectionState.UNREACHABLE

        self.checked_at = datetime.now()
        logger.debug(f"Remote connection: {self.state.value}")
        return self.state
