"""
Remote Service Factory

Builds the remote service instance described by the settings.

Usage:
    from app.services.remote import build_remote_service

    remote = build_remote_service(settings)
    if remote is None:
        # Offline mode: local mirror only

Selection:
    - SUPABASE_URL or SUPABASE_ANON_KEY missing → None (offline mode)
    - REMOTE_BACKEND=mock → MockRemoteService (in-memory)
    - REMOTE_BACKEND=supabase → SupabaseRemoteService

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from typing import Optional

from app.core.config import RemoteBackend, Settings
from app.services.remote.base import (
    BaseRemoteService,
    ChangeCallback,
    ChangePayload,
    NoopSubscription,
    RemoteServiceError,
    Subscription,
    Table,
    remote_ready,
)
from app.services.remote.mock import MockRemoteService
from app.services.remote.supabase import SupabaseRemoteService

logger = logging.getLogger(__name__)


def build_remote_service(settings: Settings) -> Optional[BaseRemoteService]:
    """
    Build the remote service described by settings.

    Returns:
        BaseRemoteService, or None when the remote service is not configured
    """
    if not settings.remote_configured:
        logger.warning("Remote service not configured, using local mirror (offline mode)")
        return None

    if settings.remote_backend == RemoteBackend.MOCK:
        logger.info("Remote Service: Using MockRemoteService")
        return MockRemoteService(failure_rate=settings.mock_remote_failure_rate)

    logger.info(f"Remote Service: Using SupabaseRemoteService ({settings.env_mode.value} mode)")
    return SupabaseRemoteService(
        url=settings.supabase_url,
        key=settings.supabase_anon_key,
        heartbeat_seconds=settings.realtime_heartbeat_seconds,
        reconnect_seconds=settings.realtime_reconnect_seconds,
    )


__all__ = [
    "build_remote_service",
    "BaseRemoteService",
    "ChangeCallback",
    "ChangePayload",
    "NoopSubscription",
    "RemoteServiceError",
    "Subscription",
    "Table",
    "remote_ready",
    "MockRemoteService",
    "SupabaseRemoteService",
]
