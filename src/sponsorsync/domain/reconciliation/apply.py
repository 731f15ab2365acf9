"""Bounded-parallel insertion of new organisations."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from sponsorsync.domain.model import AddedRecords, Organisation, new_id

from .errors import BatchApplyError

if TYPE_CHECKING:
    from collections.abc import Iterable

log = getLogger(__name__)

DEFAULT_BATCH_SIZE = 5000
DEFAULT_MAX_WORKERS = 4

BatchWriter = Callable[[Sequence[Organisation]], Awaitable[None] | None]

type _Batch = list[Organisation] | None


@dataclass(slots=True)
class BatchApplyScheduler:
    """Feed additions through a bounded queue to a fixed pool of writers.

    One producer chunks the additions into batches of ``batch_size``; the last batch
    may be smaller. ``max_workers`` consumers take batches off the queue, give each
    organisation a fresh id and hand the batch to ``write_batch``. The queue holds
    at most one batch per worker, so the producer waits instead of buffering the
    whole snapshot. Each consumer stops on its own end-of-work marker.

    A synchronous writer, such as a repository sharing one session, runs on the
    event loop thread, so its batches are written one after another; only an
    awaitable writer overlaps. Either way the queue bounds memory and writing
    starts while the diff is still producing additions.

    Writer failures surface as :class:`BatchApplyError`; anything raised while
    producing additions propagates unchanged.
    """

    write_batch: BatchWriter
    batch_size: int = DEFAULT_BATCH_SIZE
    max_workers: int = DEFAULT_MAX_WORKERS

    def __post_init__(self) -> None:
        if self.batch_size < 1 or self.max_workers < 1:
            raise ValueError("batch_size and max_workers must be positive")

    async def drain(self, additions: Iterable[Organisation]) -> AddedRecords:
        added = AddedRecords()
        queue: asyncio.Queue[_Batch] = asyncio.Queue(maxsize=self.max_workers)
        failure: Exception | None = None
        try:
            async with asyncio.TaskGroup() as group:
                group.create_task(self._produce(additions, queue))
                for worker in range(self.max_workers):
                    group.create_task(self._consume(worker, queue, added))
        except ExceptionGroup as failures:
            failure = failures.exceptions[0]
        if failure is not None:
            # outside the handler, so the group is not chained as its context
            raise failure
        log.info("Inserted %d organisations", added.count)
        return added

    async def _produce(
        self,
        additions: Iterable[Organisation],
        queue: asyncio.Queue[_Batch],
    ) -> None:
        batch: list[Organisation] = []
        for organisation in additions:
            batch.append(organisation)
            if len(batch) >= self.batch_size:
                await queue.put(batch)
                batch = []
        if batch:
            await queue.put(batch)
        for _ in range(self.max_workers):
            await queue.put(None)

    async def _consume(
        self,
        worker: int,
        queue: asyncio.Queue[_Batch],
        added: AddedRecords,
    ) -> None:
        while (batch := await queue.get()) is not None:
            for organisation in batch:
                organisation.id = new_id()
            try:
                outcome = self.write_batch(batch)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:
                raise BatchApplyError(f"Batch insert failed: {exc}") from exc
            added.record(organisation.name for organisation in batch)
            log.debug("Worker %d inserted a batch of %d", worker, len(batch))
