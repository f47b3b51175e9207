"""Keeps one live editing session per open flow."""
from __future__ import annotations

import logging
import threading
from typing import Dict, Optional

from archflow.application.debounce import TimerFactory
from archflow.application.flow_session import FlowSession
from archflow.domain.errors import PersistenceError
from archflow.domain.pricing import ModelPriceIndex
from archflow.storage.interface import FlowStorage

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Opens sessions lazily from storage and disposes them on close."""

    def __init__(
        self,
        storage: FlowStorage,
        prices: Optional[ModelPriceIndex] = None,
        debounce_seconds: float = 1.0,
        timer_factory: Optional[TimerFactory] = None,
    ) -> None:
        self.storage = storage
        self.prices = prices
        self.debounce_seconds = debounce_seconds
        self.timer_factory = timer_factory
        self._sessions: Dict[str, FlowSession] = {}
        self._lock = threading.Lock()

    def get(self, flow_id: str) -> FlowSession:
        with self._lock:
            session = self._sessions.get(flow_id)
            if session is None:
                session = FlowSession.load(
                    flow_id,
                    self.storage,
                    prices=self.prices,
                    debounce_seconds=self.debounce_seconds,
                    timer_factory=self.timer_factory,
                )
                self._sessions[flow_id] = session
                logger.info(f"Opened session for flow {flow_id}")
            return session

    def close(self, flow_id: str, flush: bool = True) -> None:
        """Dispose a session; pending edits are written first unless ``flush`` is False."""
        with self._lock:
            session = self._sessions.pop(flow_id, None)
        if session is None:
            return
        try:
            if flush:
                session.flush()
        finally:
            session.dispose()

    def close_all(self) -> None:
        for flow_id in list(self._sessions):
            try:
                self.close(flow_id)
            except PersistenceError as e:
                logger.error(f"[PERSIST] Final save of flow {flow_id} failed: {e}")

    def set_prices(self, prices: Optional[ModelPriceIndex]) -> None:
        self.prices = prices
        for session in list(self._sessions.values()):
            session.set_prices(prices)
