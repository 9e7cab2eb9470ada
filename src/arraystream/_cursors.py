# A "cursor" is the pull primitive every stream is built on.
#
# It has a single coroutine method, ``_get_next``, which returns the next
# element or ``FINISHED``. Sources, the traversal engine and all the adapters
# are cursors, each holding the cursor it pulls from.
#
# The same cursor classes serve both ``Stream`` and ``AsyncStream``.
# Values produced by user functions go through a ``resolve`` coroutine:
# ``resolve_sync`` returns the value untouched and rejects awaitables with a
# ``TypeError``; ``resolve_async`` awaits the value if it is awaitable.
# A ``Stream`` only ever uses sync sources and ``resolve_sync``, hence its
# cursor coroutines never suspend and ``run_sync`` can drive them to
# completion with a single ``send``.

from __future__ import annotations

import inspect
from collections.abc import (
    AsyncIterator,
    Awaitable,
    Callable,
    Iterator,
)
from typing import Any, Literal, TypeVar

import asyncstdlib

from .errors import Breaker, ErrorHandler, StreamError

FINISHED = object()
DROPPED = object()
NOTSET = object()


Elem = TypeVar('Elem')

Resolver = Callable[[Any], Awaitable[Any]]


async def resolve_sync(value):
    if inspect.isawaitable(value):
        if inspect.iscoroutine(value):
            value.close()
        raise TypeError(
            f"a synchronous stream got an awaitable {type(value).__name__}; "
            "use `AsyncStream` for async functions"
        )
    return value


async def resolve_async(value):
    if inspect.isawaitable(value):
        return await value
    return value


def run_sync(coro):
    """
    Run a coroutine that is known not to suspend, and return its result.

    Exceptions raised in the coroutine propagate.
    """
    try:
        coro.send(None)
    except StopIteration as e:
        return e.value
    coro.close()
    raise RuntimeError(
        'a synchronous stream met an awaitable; use `AsyncStream` for async sources and functions'
    )


class Cursor:
    async def _get_next(self):
        raise NotImplementedError


class SyncSource(Cursor):
    def __init__(self, iterator: Iterator):
        self._iterator = iterator

    async def _get_next(self):
        return next(self._iterator, FINISHED)


class AsyncSource(Cursor):
    def __init__(self, iterator: AsyncIterator):
        self._iterator = iterator

    async def _get_next(self):
        return await asyncstdlib.anext(self._iterator, FINISHED)


class PollSource(Cursor):
    """
    Calls ``func`` for every element. A result of ``None`` ends the source for good.
    """

    def __init__(self, func: Callable[[], Any], resolve: Resolver):
        self._func = func
        self._resolve = resolve
        self._finished = False

    async def _get_next(self):
        if self._finished:
            return FINISHED
        x = await self._resolve(self._func())
        if x is None:
            self._finished = True
            return FINISHED
        return x


class Operation:
    __slots__ = ('kind', 'func')

    def __init__(
        self,
        kind: Literal['map', 'filter', 'for_each', 'filter_map'],
        func: Callable[[Any], Any],
    ):
        self.kind = kind
        self.func = func

    def __repr__(self):
        return f'{self.__class__.__name__}({self.kind!r}, {self.func!r})'


class Traversal(Cursor):
    """
    Pulls elements from ``source``, runs each through the operations in ``ops``,
    and returns the ones that survive.

    ``ops`` is the (live) operation queue of the stream, so operations appended
    after the traversal was created still apply to elements not yet pulled.

    ``index`` counts every element pulled, including those that were dropped
    or failed, and also failed pulls.
    """

    def __init__(
        self,
        source: Cursor,
        ops: list[Operation],
        handler: ErrorHandler,
        resolve: Resolver,
    ):
        self._source = source
        self._ops = ops
        self._handler = handler
        self._resolve = resolve
        self.index = 0

    async def _get_next(self):
        source = self._source
        while True:
            index = self.index
            try:
                x = await source._get_next()
            except Exception as e:
                if isinstance(e, StreamError) and isinstance(self._handler, Breaker):
                    # Already reported by an upstream stream.
                    raise
                self.index += 1
                self._handler.register_cycle_error(e, index)
                continue
            if x is FINISHED:
                return FINISHED
            self.index += 1
            x = await self._apply(x, index)
            if x is not DROPPED:
                return x

    async def _apply(self, x, index: int):
        resolve = self._resolve
        for op in self._ops:
            try:
                kind = op.kind
                if kind == 'map':
                    x = await resolve(op.func(x))
                elif kind == 'filter':
                    if not await resolve(op.func(x)):
                        return DROPPED
                elif kind == 'for_each':
                    await resolve(op.func(x))
                else:
                    y = await resolve(op.func(x))
                    if y is None or y is False:
                        return DROPPED
                    x = y
            except Exception as e:
                self._handler.register_op_error(e, index, x, op.kind)
                return DROPPED
        return x


class Taker(Cursor):
    def __init__(self, instream: Cursor, n: int):
        self._instream = instream
        self.n = n
        self._taken = 0

    async def _get_next(self):
        if self._taken >= self.n:
            return FINISHED
        x = await self._instream._get_next()
        if x is not FINISHED:
            self._taken += 1
        return x


class Skipper(Cursor):
    def __init__(self, instream: Cursor, n: int):
        self._instream = instream
        self.n = n
        self._skipped = 0

    async def _get_next(self):
        while self._skipped < self.n:
            if await self._instream._get_next() is FINISHED:
                return FINISHED
            self._skipped += 1
        return await self._instream._get_next()


class Stepper(Cursor):
    def __init__(self, instream: Cursor, step: int):
        assert step > 0
        self._instream = instream
        self.step = step
        self._pos = 0

    async def _get_next(self):
        while True:
            x = await self._instream._get_next()
            if x is FINISHED:
                return FINISHED
            pos = self._pos
            self._pos += 1
            if pos % self.step == 0:
                return x


class Chainer(Cursor):
    def __init__(self, first: Cursor, second: Cursor):
        self._instreams = [first, second]

    async def _get_next(self):
        while self._instreams:
            x = await self._instreams[0]._get_next()
            if x is not FINISHED:
                return x
            self._instreams.pop(0)
        return FINISHED


class Intersperser(Cursor):
    """
    Puts a separator between consecutive elements.

    If ``sep`` is callable, the separator is ``sep(x)``, ``x`` being the element
    just before the separator.
    """

    def __init__(self, instream: Cursor, sep: Any, resolve: Resolver):
        self._instream = instream
        self._sep = sep
        self._resolve = resolve
        self._prev = NOTSET
        self._lookahead = NOTSET

    async def _get_next(self):
        if self._lookahead is not NOTSET:
            x = self._lookahead
            self._lookahead = NOTSET
            self._prev = x
            return x
        x = await self._instream._get_next()
        if x is FINISHED:
            return FINISHED
        if self._prev is NOTSET:
            self._prev = x
            return x
        # ``x`` is held back until the separator has been delivered.
        self._lookahead = x
        if callable(self._sep):
            return await self._resolve(self._sep(self._prev))
        return self._sep


class Zipper(Cursor):
    def __init__(self, instream: Cursor, other: Cursor):
        self._instream = instream
        self._other = other
        self._finished = False

    async def _get_next(self):
        if self._finished:
            return FINISHED
        x = await self._instream._get_next()
        if x is FINISHED:
            self._finished = True
            return FINISHED
        y = await self._other._get_next()
        if y is FINISHED:
            self._finished = True
            return FINISHED
        return (x, y)


class Enumerator(Cursor):
    def __init__(self, instream: Cursor):
        self._instream = instream
        self._count = 0

    async def _get_next(self):
        x = await self._instream._get_next()
        if x is FINISHED:
            return FINISHED
        i = self._count
        self._count += 1
        return (i, x)


class FlatMapper(Cursor):
    def __init__(self, instream: Cursor, func: Callable, resolve: Resolver):
        self._instream = instream
        self.func = func
        self._resolve = resolve
        self._batch = None

    async def _get_next(self):
        while True:
            if self._batch is not None:
                x = next(self._batch, FINISHED)
                if x is not FINISHED:
                    return x
                self._batch = None
            x = await self._instream._get_next()
            if x is FINISHED:
                return FINISHED
            self._batch = iter(await self._resolve(self.func(x)))


class Fuser(Cursor):
    def __init__(self, instream: Cursor):
        self._instream = instream
        self._blown = False

    async def _get_next(self):
        if self._blown:
            return FINISHED
        x = await self._instream._get_next()
        if x is None:
            self._blown = True
            return FINISHED
        return x


class Deduper(Cursor):
    def __init__(self, instream: Cursor, key: Callable | None, resolve: Resolver):
        self._instream = instream
        self.key = key
        self._resolve = resolve
        self._seen = set()

    async def _get_next(self):
        while True:
            x = await self._instream._get_next()
            if x is FINISHED:
                return FINISHED
            z = x if self.key is None else await self._resolve(self.key(x))
            if z not in self._seen:
                self._seen.add(z)
                return x


class SyncReader(Iterator[Elem]):
    """
    Presents a cursor as a standard iterator.
    """

    def __init__(self, cursor: Cursor):
        self._cursor = cursor

    def __iter__(self):
        return self

    def __next__(self) -> Elem:
        x = run_sync(self._cursor._get_next())
        if x is FINISHED:
            raise StopIteration
        return x


class AsyncReader(AsyncIterator[Elem]):
    """
    Presents a cursor as a standard async iterator.
    """

    def __init__(self, cursor: Cursor):
        self._cursor = cursor

    def __aiter__(self):
        return self

    async def __anext__(self) -> Elem:
        x = await self._cursor._get_next()
        if x is FINISHED:
            raise StopAsyncIteration
        return x
