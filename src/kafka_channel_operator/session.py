"""Per-attempt Kafka admin sessions.

The Kafka admin connection fails unrecoverably after idle periods (broken
pipes), so sessions are never pooled: every reconciliation or finalization
attempt opens a fresh connection and closes it before returning. A single
process-wide lock is held for the whole attempt, so at most one admin
connection is open at any instant.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator

from . import metrics
from .config import AdminConfig, ConfigStore
from .constants import CONTROLLER_COMPONENT_NAME
from .services.kafka.base import AdminSession
from .utils.errors import sanitize_exception

logger = logging.getLogger(__name__)

SessionFactory = Callable[[AdminConfig, str], AdminSession]


class AdminSessionManager:
    """Opens and closes Kafka admin sessions under one lock."""

    def __init__(
        self,
        factory: SessionFactory,
        config_store: ConfigStore,
        component_id: str = CONTROLLER_COMPONENT_NAME,
    ) -> None:
        self.factory = factory
        self.config_store = config_store
        self.component_id = component_id
        self.lock = threading.Lock()

    def acquire(self) -> AdminSession | None:
        """Open a new admin session.

        Failures are logged and yield None; later stages fail on the missing session.
        """
        admin_config = self.config_store.current()
        if admin_config is None:
            logger.error("Failed to create Kafka admin client: no Kafka configuration loaded")
            metrics.admin_sessions_total.labels(result="failed").inc()
            return None
        try:
            session = self.factory(admin_config, self.component_id)
        except Exception as e:
            logger.error(f"Failed to create Kafka admin client: {sanitize_exception(e)}")
            metrics.admin_sessions_total.labels(result="failed").inc()
            return None
        metrics.admin_sessions_total.labels(result="opened").inc()
        return session

    def release(self, session: AdminSession | None) -> None:
        """Close a session. Releasing None is a no-op; close errors are logged."""
        if session is None:
            return
        try:
            session.close()
        except Exception as e:
            logger.error(f"Failed to close Kafka admin client: {sanitize_exception(e)}")
            metrics.admin_sessions_total.labels(result="close_failed").inc()
            return
        metrics.admin_sessions_total.labels(result="closed").inc()

    @contextmanager
    def session(self) -> Iterator[AdminSession | None]:
        """Hold the admin lock and a fresh session for the duration of one attempt."""
        wait_start = time.time()
        with self.lock:
            metrics.admin_lock_wait_seconds.observe(time.time() - wait_start)
            admin = self.acquire()
            try:
                yield admin
            finally:
                self.release(admin)
