"""Debounced batching of remote mutations.

Each mutation kind gets its own MutationQueue. Enqueued ids collect until the
debounce timer fires (or the queue is flushed explicitly), then one batched
remote call covers all of them. The call itself is blocking HTTP, so it runs
in a worker thread; its outcome is reported back on the event loop through
``on_settled`` so the matching optimistic patches can be committed or rolled
back.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from typing import Callable

from .config import MutationKind
from .scheduling import Scheduler, Timer

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 5.0

# Performs the remote call for a batch; raises on failure
SendMutation = Callable[[MutationKind, list[str]], object]

# Called on the event loop once a batch has succeeded (True) or failed (False)
SettledCallback = Callable[[MutationKind, list[str], bool], None]


class MutationQueue:
    """Collects target ids for one mutation kind and sends them in batches."""

    def __init__(
        self,
        kind: MutationKind,
        send: SendMutation,
        scheduler: Scheduler,
        debounce: float = DEFAULT_DEBOUNCE_SECONDS,
        on_settled: SettledCallback | None = None,
    ) -> None:
        self.kind = kind
        self._send = send
        self._on_settled = on_settled
        self._pending: list[str] = []
        self._timer = Timer(scheduler, debounce, self.flush)
        self._in_flight: set[asyncio.Task] = set()

    @property
    def pending(self) -> list[str]:
        return list(self._pending)

    @property
    def in_flight(self) -> list[asyncio.Task]:
        return list(self._in_flight)

    def enqueue(self, target_id: str) -> None:
        """Add an id to the next batch and restart the debounce window."""
        if target_id not in self._pending:
            self._pending.append(target_id)
        self._timer.restart()

    def flush(self) -> asyncio.Task | None:
        """Send everything pending now.

        Returns the task for the batched call, or None when nothing was
        pending. Must be called from the event loop.
        """
        self._timer.cancel()
        if not self._pending:
            return None

        ids, self._pending = self._pending, []
        logger.debug("Flushing %s for %d id(s)", self.kind, len(ids))
        task = asyncio.get_running_loop().create_task(self._run(ids))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def _run(self, ids: list[str]) -> bool:
        try:
            await asyncio.to_thread(self._send, self.kind, ids)
            ok = True
        except Exception:
            logger.exception("Batched %s failed for %d id(s)", self.kind, len(ids))
            ok = False

        if self._on_settled is not None:
            self._on_settled(self.kind, ids, ok)
        return ok


class MutationRegistry:
    """Owns every mutation queue created for one application instance."""

    def __init__(self) -> None:
        self._queues: dict[MutationKind, MutationQueue] = {}

    def create_queue(
        self,
        kind: MutationKind,
        send: SendMutation,
        scheduler: Scheduler,
        debounce: float = DEFAULT_DEBOUNCE_SECONDS,
        on_settled: SettledCallback | None = None,
    ) -> MutationQueue:
        queue = MutationQueue(kind, send, scheduler, debounce=debounce, on_settled=on_settled)
        self.register(queue)
        return queue

    def register(self, queue: MutationQueue) -> None:
        if queue.kind in self._queues:
            raise ValueError(f"A queue for {queue.kind!r} is already registered")
        self._queues[queue.kind] = queue

    def get(self, kind: MutationKind) -> MutationQueue:
        return self._queues[kind]

    def __contains__(self, kind: object) -> bool:
        return kind in self._queues

    def __iter__(self) -> Iterator[MutationQueue]:
        return iter(list(self._queues.values()))

    def __len__(self) -> int:
        return len(self._queues)

    def flush_all(self) -> list[asyncio.Task]:
        """Flush every queue; returns all calls still outstanding, old and new."""
        tasks: list[asyncio.Task] = []
        for queue in self:
            queue.flush()
            tasks.extend(queue.in_flight)
        return tasks


async def flush_pending_mutations(registry: MutationRegistry) -> None:
    """Flush all queues and wait for every batched call to settle.

    Run this before the process exits so no queued action is dropped.
    """
    tasks = registry.flush_all()
    if tasks:
        logger.info("Waiting for %d pending mutation batch(es)", len(tasks))
        await asyncio.gather(*tasks)
