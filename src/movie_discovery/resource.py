"""Observable wrapper around an async producer: data, loading and error state."""

import asyncio
import logging
from typing import Awaitable, Callable, Generic, TypeVar

from attrs import define, field, frozen

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNKNOWN_ERROR = "An unknown error occurred"


@frozen
class ErrorInfo:
    """Normalized failure of a producer; the exception type is not kept."""

    message: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorInfo":
        return cls(message=str(exc) or UNKNOWN_ERROR)


@frozen
class ResourceState(Generic[T]):
    data: T | None = None
    loading: bool = False
    error: ErrorInfo | None = None


@define(eq=False)
class AsyncResource(Generic[T]):
    """Runs ``producer`` on demand and tracks the outcome.

    Invocations are never de-duplicated or cancelled. By default whichever
    invocation settles last writes the state, even after a ``reset``. With
    ``latest_only`` each invocation and each reset takes a sequence number and
    only the most recent one may write.

    With ``auto_start`` the producer is started on construction, so the
    resource must be built inside a running event loop.
    """

    producer: Callable[[], Awaitable[T]]
    auto_start: bool = True
    latest_only: bool = False
    data: T | None = field(default=None, init=False)
    loading: bool = field(default=False, init=False)
    error: ErrorInfo | None = field(default=None, init=False)
    _issued: int = field(default=0, init=False)
    _tasks: set[asyncio.Task] = field(factory=set, init=False)

    def __attrs_post_init__(self) -> None:
        if self.auto_start:
            self.start()

    @property
    def state(self) -> ResourceState[T]:
        return ResourceState(data=self.data, loading=self.loading, error=self.error)

    def start(self) -> asyncio.Task:
        """Invoke the producer; loading is set before this returns."""
        self._issued += 1
        self.loading = True
        self.error = None
        task = asyncio.get_running_loop().create_task(self._run(self._issued))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    refetch = start

    def reset(self) -> None:
        """Clear state. In-flight invocations keep running."""
        if self.latest_only:
            self._issued += 1
        self.data = None
        self.error = None
        self.loading = False

    async def settled(self) -> None:
        """Wait for every in-flight invocation to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _is_current(self, seq: int) -> bool:
        return not self.latest_only or seq == self._issued

    async def _run(self, seq: int) -> None:
        try:
            result = await self.producer()
        except Exception as exc:
            logger.debug("Producer failed: %r", exc)
            if self._is_current(seq):
                self.error = ErrorInfo.from_exception(exc)
                self.loading = False
            return

        if self._is_current(seq):
            self.data = result
            self.loading = False
        else:
            logger.debug("Discarding stale result from invocation %d", seq)
