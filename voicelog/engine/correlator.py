"""Map in-flight transcription ids to the futures their callers await."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

LOGGER = logging.getLogger("voicelog.correlator")


class RequestCorrelator:
    """Keeps at most one pending future per request id.

    Entries are removed the moment they settle, so duplicate or late terminal
    messages for the same id fall through as no-ops.
    """

    def __init__(self) -> None:
        self._pending: Dict[str, asyncio.Future] = {}

    def register(self, request_id: str, loop: Optional[asyncio.AbstractEventLoop] = None) -> asyncio.Future:
        if request_id in self._pending:
            raise ValueError(f"request {request_id} is already pending")
        loop = loop or asyncio.get_running_loop()
        future = loop.create_future()
        self._pending[request_id] = future
        return future

    def resolve(self, request_id: str, transcript: str) -> None:
        future = self._pending.pop(request_id, None)
        if future is None or future.done():
            LOGGER.debug("Ignoring result for unknown request %s", request_id)
            return
        future.set_result(transcript)

    def reject(self, request_id: str, error: BaseException) -> None:
        future = self._pending.pop(request_id, None)
        if future is None or future.done():
            LOGGER.debug("Ignoring error for unknown request %s: %s", request_id, error)
            return
        future.set_exception(error)

    def reject_all(self, error: BaseException) -> int:
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(error)
        if pending:
            LOGGER.warning("Rejected %d pending transcription(s): %s", len(pending), error)
        return len(pending)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending


__all__ = ["RequestCorrelator"]
