"""Debounced hand-off of settled cart items to the persistence collaborator."""

from __future__ import annotations

import asyncio
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from .trigger import DebouncedTrigger

if TYPE_CHECKING:
    from cartpricing.domain.ports import CartItemSaver
    from cartpricing.domain.selection_tree import SelectionChange

    from .session import PricingSession

log = getLogger(__name__)


class SaveStatus(StrEnum):
    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


class AutoSaveScheduler:
    """Persist the cart item once edits go quiet and every price has settled.

    Saving never happens on an in-flight tree: the scheduler waits for the
    session to settle first and skips the save if new edits arrived meanwhile
    (they restart the timer and will be saved on the next fire).
    """

    def __init__(
        self,
        session: PricingSession,
        saver: CartItemSaver,
        delay_seconds: float | None = None,
    ) -> None:
        if delay_seconds is None:
            delay_seconds = session.config.autosave_debounce_seconds
        self._session = session
        self._saver = saver
        self._trigger = DebouncedTrigger(self._start_save, delay_seconds=delay_seconds)
        self._task: asyncio.Task[None] | None = None
        self._unsubscribe = session.tree.subscribe(self._on_change)
        self.status = SaveStatus.IDLE
        self.last_error: Exception | None = None
        self.save_count = 0

    @property
    def pending(self) -> bool:
        return self._trigger.pending or self._task is not None

    def _on_change(self, change: SelectionChange) -> None:
        if change.from_engine and self._task is not None:
            # prices settling under a running save are part of that save
            return
        self._trigger.restart()

    def _start_save(self) -> None:
        if self._task is not None and not self._task.done():
            # the running save re-checks the tree; retry once it is done
            self._task.add_done_callback(lambda _: self._trigger.restart())
            return
        self._task = asyncio.get_running_loop().create_task(self._save())
        self._task.add_done_callback(self._save_done)

    def _save_done(self, task: asyncio.Task[None]) -> None:
        if self._task is task:
            self._task = None

    async def _save(self) -> None:
        await self._session.settle()
        if not self._session.is_settled:
            log.debug("Auto-save skipped; the cart changed while settling")
            return
        cart = self._session.tree.cart
        self.status = SaveStatus.SAVING
        try:
            await self._saver.save(cart, self._session.totals())
        except Exception as exc:
            log.exception("Auto-save of cart item %s failed", cart.id)
            self.status = SaveStatus.ERROR
            self.last_error = exc
            return
        self.status = SaveStatus.SAVED
        self.last_error = None
        self.save_count += 1
        log.info("Cart item %s saved", cart.id)

    async def flush(self) -> None:
        """Save now if a save is scheduled, and wait for it to finish."""

        self._trigger.flush()
        task = self._task
        if task is not None:
            await task

    async def close(self) -> None:
        self._unsubscribe()
        self._trigger.cancel()
        if self._task is not None:
            await self._task
