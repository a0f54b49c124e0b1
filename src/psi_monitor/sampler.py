"""Per-resource sampler workers.

One long-lived asyncio task per resource serializes reads of that resource's
pressure file. Requests are single-shot messages carrying their own reply
future, so a round can dispatch to every worker before awaiting any reply.
"""

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

import structlog

from psi_monitor.reader import PressureError, read_counter

log = structlog.get_logger()

CounterReader = Callable[[Path], int]


class RoundError(PressureError):
    """A synchronized sampling round failed.

    Wraps the first resource-level error (available as ``__cause__``).
    """

    def __init__(self, resource: str, error: BaseException) -> None:
        self.resource = resource
        self.error = error
        super().__init__(f"sampling {resource}: {error}")


@dataclass
class SampleRequest:
    """Ask a worker for a fresh counter; answered through ``reply``."""

    reply: asyncio.Future[int]


class SamplerPool:
    """Worker pool with one sampler task per resource."""

    def __init__(
        self,
        paths: Mapping[str, Path],
        reader: CounterReader = read_counter,
    ) -> None:
        self._paths = dict(paths)
        self._reader = reader
        self._queues: dict[str, asyncio.Queue[SampleRequest]] = {}
        self._workers: dict[str, asyncio.Task] = {}

    @property
    def resources(self) -> tuple[str, ...]:
        """Resources served by this pool, in dispatch order."""
        return tuple(self._paths)

    @property
    def running(self) -> bool:
        """Return True once workers have been started."""
        return bool(self._workers)

    def start(self) -> None:
        """Spawn one worker per resource. Must be called inside a running loop."""
        if self.running:
            return
        for resource, path in self._paths.items():
            queue: asyncio.Queue[SampleRequest] = asyncio.Queue()
            self._queues[resource] = queue
            self._workers[resource] = asyncio.create_task(
                self._worker(resource, path, queue), name=f"sampler-{resource}"
            )
        log.debug("sampler_pool_started", resources=list(self._paths))

    async def _worker(
        self,
        resource: str,
        path: Path,
        queue: asyncio.Queue[SampleRequest],
    ) -> None:
        """Answer sample requests for one resource, one at a time."""
        loop = asyncio.get_running_loop()
        while True:
            request = await queue.get()
            try:
                counter = await loop.run_in_executor(None, self._reader, path)
            except Exception as e:
                if not request.reply.done():
                    request.reply.set_exception(e)
            else:
                if not request.reply.done():
                    request.reply.set_result(counter)
            finally:
                queue.task_done()

    def request(self, resource: str) -> asyncio.Future[int]:
        """Dispatch a sample request without waiting for the answer."""
        if not self.running:
            raise RuntimeError("SamplerPool.request() called before start()")
        reply: asyncio.Future[int] = asyncio.get_running_loop().create_future()
        self._queues[resource].put_nowait(SampleRequest(reply=reply))
        return reply

    async def sample_all(self) -> dict[str, int]:
        """Sample every resource and join all replies.

        Raises:
            RoundError: For the first resource (in dispatch order) whose read failed.
        """
        replies = {resource: self.request(resource) for resource in self._paths}
        results = await asyncio.gather(*replies.values(), return_exceptions=True)

        counters: dict[str, int] = {}
        for resource, result in zip(replies, results):
            if isinstance(result, BaseException):
                raise RoundError(resource, result) from result
            counters[resource] = result
        return counters

    async def close(self) -> None:
        """Cancel all workers."""
        workers = list(self._workers.values())
        for task in workers:
            task.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        self._workers.clear()
        self._queues.clear()
