"""Recurring triggers persisted in the property store, plus a blocking polling loop."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from gmail_pdf_archiver.storage.state import SqlitePropertyStore

logger = logging.getLogger(__name__)

TRIGGER_KEY_PREFIX = "trigger:"
RUN_HANDLER = "run"


class TriggerScheduler:
    """Time-driven triggers keyed by handler name.

    ``install`` is idempotent: a handler gets at most one trigger.
    ``run_forever`` executes sequentially; a handler failure is logged and the
    loop keeps going.
    """

    def __init__(
        self,
        properties: SqlitePropertyStore,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._properties = properties
        self._sleep = sleep
        self._clock = clock

    def install(self, handler: str, every_minutes: int) -> bool:
        """Register a trigger. Returns False if one already exists for ``handler``."""
        if every_minutes < 1:
            raise ValueError("every_minutes must be at least 1")
        key = f"{TRIGGER_KEY_PREFIX}{handler}"
        if self._properties.get(key) is not None:
            logger.warning("Trigger for %r already exists", handler)
            return False
        self._properties.set(key, str(every_minutes))
        logger.info("Trigger created: %r every %d minutes", handler, every_minutes)
        return True

    def remove(self, handler: str) -> bool:
        removed = self._properties.delete(f"{TRIGGER_KEY_PREFIX}{handler}")
        if removed:
            logger.info("Trigger removed: %r", handler)
        return removed

    def list_triggers(self) -> dict[str, int]:
        """Installed triggers as handler name → interval in minutes."""
        triggers: dict[str, int] = {}
        for key in self._properties.keys(TRIGGER_KEY_PREFIX):
            value = self._properties.get(key)
            if value is not None:
                triggers[key[len(TRIGGER_KEY_PREFIX) :]] = int(value)
        return triggers

    def run_forever(
        self,
        handlers: dict[str, Callable[[], object]],
        *,
        max_cycles: int | None = None,
    ) -> None:
        """Invoke installed handlers on their interval until interrupted.

        Every installed trigger fires on the first cycle. Triggers whose
        handler is not in ``handlers`` are ignored with a warning.
        ``max_cycles`` bounds the loop (one cycle = one wake-up).
        """
        next_due: dict[str, float] = {}
        cycles = 0

        while max_cycles is None or cycles < max_cycles:
            cycles += 1
            triggers = self.list_triggers()
            if not triggers:
                logger.warning("No trigger installed; nothing to run")
                return

            now = self._clock()
            for name, minutes in triggers.items():
                handler = handlers.get(name)
                if handler is None:
                    if name not in next_due:
                        logger.warning("No handler registered for trigger %r", name)
                    next_due[name] = now + minutes * 60
                    continue
                if next_due.get(name, now) > now:
                    continue
                logger.info("Trigger %r firing", name)
                try:
                    handler()
                except Exception:
                    logger.exception("Trigger %r failed", name)
                next_due[name] = self._clock() + minutes * 60

            if max_cycles is not None and cycles >= max_cycles:
                return
            wait = max(0.0, min(next_due.values()) - self._clock())
            logger.debug("Sleeping %.1fs until next trigger", wait)
            self._sleep(wait)
