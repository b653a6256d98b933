"""Job admission: a bounded slot gate that rejects instead of queuing."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog

from slideshow_render.errors import RenderBusy

logger = structlog.get_logger()


class JobAdmission:
    """Admit at most *slots* render jobs at once.

    ``admit`` never waits: when every slot is taken it raises ``RenderBusy``
    and the caller is expected to retry later.
    """

    def __init__(self, slots: int = 1):
        if slots < 1:
            raise ValueError("admission needs at least one slot")
        self.slots = slots
        self._active: set[str] = set()

    @property
    def busy(self) -> bool:
        return len(self._active) >= self.slots

    @property
    def active_jobs(self) -> frozenset[str]:
        return frozenset(self._active)

    def try_acquire(self, job_id: str) -> bool:
        if self.busy or job_id in self._active:
            return False
        self._active.add(job_id)
        return True

    def release(self, job_id: str) -> None:
        self._active.discard(job_id)

    @asynccontextmanager
    async def admit(self, job_id: str) -> AsyncIterator[None]:
        if not self.try_acquire(job_id):
            logger.warning("admission.rejected", job_id=job_id, active=sorted(self._active))
            raise RenderBusy("a render job is already in progress; retry later")
        logger.info("admission.acquired", job_id=job_id)
        try:
            yield
        finally:
            self.release(job_id)
            logger.info("admission.released", job_id=job_id)
