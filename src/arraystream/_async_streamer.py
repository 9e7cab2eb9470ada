from __future__ import annotations

from collections.abc import (
    AsyncIterable,
    AsyncIterator,
    Awaitable,
    Callable,
    Iterable,
)
from typing import (
    Any,
    Optional,
    TypeVar,
    Union,
)

import asyncstdlib
from typing_extensions import Self  # In 3.11, import this from `typing`

from ._cursors import (
    NOTSET,
    AsyncReader,
    AsyncSource,
    Cursor,
    PollSource,
    SyncSource,
    resolve_async,
)
from ._streamer import StreamBase
from .errors import HandlerSpec

TT = TypeVar('TT')
Elem = TypeVar('Elem')


class Poll:
    """
    Describes a source that is produced by calling a function repeatedly.

    ``func`` takes no argument and returns the next element, or an awaitable
    that resolves to it. A result of ``None`` ends the source; ``func`` is not
    called again after that.

    Examples
    --------
    >>> queue = [1, 2, 3]
    >>> source = Poll(lambda: queue.pop(0) if queue else None)
    """

    def __init__(self, func: Callable[[], Union[Any, Awaitable[Any]]]):
        if not callable(func):
            raise TypeError(f'`func` must be callable, got {type(func).__name__}')
        self.func = func

    def __repr__(self):
        return f'{self.__class__.__name__}({self.func!r})'


class AsyncStream(StreamBase[Elem], AsyncIterable[Elem]):
    """
    The asynchronous counterpart of :class:`~arraystream.Stream`.

    The input can be an async iterable, a sync iterable, a :class:`Poll`,
    or another stream (sync or async). The functions passed to the methods
    can be sync or async; awaitables they return are awaited.
    The finalizers are coroutines:

    >>> async def main():
    ...     s = AsyncStream(range(10)).map(double).filter(is_even)
    ...     return await s.collect()

    Elements are processed strictly one at a time, in the order of the source.
    """

    _resolve = staticmethod(resolve_async)

    def __init__(
        self,
        instream: Union[AsyncIterable, Iterable, Poll, StreamBase],
        /,
        handler: HandlerSpec = None,
    ):
        """
        Parameters
        ----------
        instream
            The input stream of elements, possibly unlimited.
            A list or tuple is copied, so later changes to it are not seen by the stream.
        handler
            The error handler; see :func:`~arraystream.make_handler`.
            The default is a new :class:`~arraystream.Breaker`.
        """
        super().__init__(instream, handler=handler)

    @classmethod
    def from_poll(cls, func: Callable[[], Any], handler: HandlerSpec = None) -> Self:
        """
        Create a stream from a polling function; see :class:`Poll`.
        """
        return cls(Poll(func), handler=handler)

    def _make_source(self, instream) -> Cursor:
        if isinstance(instream, Cursor):
            return instream
        if isinstance(instream, StreamBase):
            return instream._traverse()
        if isinstance(instream, Poll):
            return PollSource(instream.func, self._resolve)
        if isinstance(instream, (list, tuple)):
            return SyncSource(iter(list(instream)))
        if hasattr(instream, '__aiter__'):
            return AsyncSource(asyncstdlib.iter(instream))
        # Sync iterators are pulled directly, so that one which raises
        # can still be pulled again.
        if hasattr(instream, '__iter__'):
            return SyncSource(iter(instream))
        raise TypeError(
            f'`AsyncStream` needs an iterable, async iterable or `Poll`, '
            f'got {type(instream).__name__}'
        )

    def __aiter__(self) -> AsyncIterator[Elem]:
        return self.read()

    def read(self) -> AsyncIterator[Elem]:
        """
        Return an async iterator over the elements of the stream, with the operations applied.

        The iterator shares its position with the stream.
        """
        return AsyncReader(self._traverse())

    async def collect(self) -> list[Elem]:
        return await self._collect()

    to_list = collect

    async def drain(self) -> int:
        """
        Drain off the stream and return the number of elements processed.
        """
        return await self._count()

    async def count(self) -> int:
        return await self._count()

    async def nth(self, n: int) -> Optional[Elem]:
        return await self._nth(n)

    async def reduce(self, func: Callable[[TT, Elem], TT], initial: TT = NOTSET) -> TT:
        """
        Fold the elements from left to right; ``func`` may be async.
        """
        return await self._reduce_left(func, initial)

    async def reduce_right(
        self, func: Callable[[TT, Elem], TT], initial: TT = NOTSET
    ) -> TT:
        return await self._reduce_right(func, initial)

    async def flat(self, depth: int = 1) -> list:
        return await self._flat(depth)

    async def any(self, func: Callable[[Elem], Any]) -> bool:
        return await self._any(func)

    some = any

    async def all(self, func: Callable[[Elem], Any]) -> bool:
        return await self._all(func)

    every = all

    async def find(self, func: Callable[[Elem], Any]) -> Optional[Elem]:
        return await self._find(func)

    async def find_index(self, func: Callable[[Elem], Any]) -> int:
        return await self._find_index(func)

    async def find_last(self, func: Callable[[Elem], Any]) -> Optional[Elem]:
        return await self._find_last_item(func)

    async def find_last_index(self, func: Callable[[Elem], Any]) -> int:
        return await self._find_last_index(func)

    async def includes(self, item: Any) -> bool:
        return await self._includes(item)

    async def partition(
        self, func: Callable[[Elem], Any]
    ) -> tuple[list[Elem], list[Elem]]:
        return await self._partition(func)
