"""
In-process ingest task queue.

The webhook handler submits a persisted ingest log id and returns at once;
a small pool of asyncio workers runs the pipeline for each id. The queue is
bounded so a flood of messages is refused at submit time instead of piling
up unseen, and every submission returns a ticket that can be awaited.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional
from uuid import UUID

logger = logging.getLogger(__name__)

IngestHandler = Callable[[UUID], Awaitable[Any]]


class IngestQueueFullError(Exception):
    """Raised when a submission would exceed the queue bound"""
    pass


class IngestTicket:
    """Handle for one submitted ingest log."""

    def __init__(self, log_id: UUID):
        self.log_id = log_id
        self.result: Any = None
        self.error: Optional[BaseException] = None
        self._done = asyncio.Event()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def _finish(self, result: Any = None, error: Optional[BaseException] = None) -> None:
        self.result = result
        self.error = error
        self._done.set()

    async def wait(self) -> Any:
        """Wait for processing; re-raises the handler's error if it failed."""
        await self._done.wait()
        if self.error is not None:
            raise self.error
        return self.result


class IngestTaskQueue:
    def __init__(self, handler: IngestHandler, maxsize: int = 100, workers: int = 2):
        self.handler = handler
        self.workers = workers
        self._queue: asyncio.Queue[IngestTicket] = asyncio.Queue(maxsize=maxsize)
        self._tasks: list[asyncio.Task] = []

    @property
    def pending(self) -> int:
        """Submitted tickets not yet picked up by a worker"""
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._worker(n), name=f"ingest-worker-{n}")
            for n in range(self.workers)
        ]
        logger.info(f"Started {self.workers} ingest workers")

    async def stop(self, drain: bool = True) -> None:
        """Stop the workers, optionally letting them finish what is queued first."""
        if drain:
            await self._queue.join()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Stopped ingest workers")

    def submit(self, log_id: UUID) -> IngestTicket:
        """
        Queue an ingest log for processing.
        
        Raises:
            IngestQueueFullError: If the queue is at capacity
        """
        ticket = IngestTicket(log_id)
        try:
            self._queue.put_nowait(ticket)
        except asyncio.QueueFull:
            logger.warning(f"Ingest queue full, refusing log {log_id}")
            raise IngestQueueFullError(f"Ingest queue is full ({self._queue.maxsize})") from None
        
        logger.debug(f"Queued ingest log {log_id} ({self.pending} pending)")
        return ticket

    async def join(self) -> None:
        """Wait until every submitted ticket has been processed."""
        await self._queue.join()

    async def _worker(self, n: int) -> None:
        while True:
            ticket = await self._queue.get()
            try:
                result = await self.handler(ticket.log_id)
            except Exception as e:
                logger.error(f"Ingest worker {n} failed on log {ticket.log_id}: {e}", exc_info=True)
                ticket._finish(error=e)
            else:
                ticket._finish(result=result)
            finally:
                self._queue.task_done()
