from __future__ import annotations

import functools
from collections.abc import (
    Callable,
    Iterable,
    Iterator,
)
from typing import (
    Any,
    Generic,
    Optional,
    TypeVar,
)

from typing_extensions import Self  # In 3.11, import this from `typing`

from ._cursors import (
    FINISHED,
    NOTSET,
    Chainer,
    Cursor,
    Deduper,
    Enumerator,
    FlatMapper,
    Fuser,
    Intersperser,
    Operation,
    Resolver,
    Skipper,
    Stepper,
    SyncReader,
    SyncSource,
    Taker,
    Traversal,
    Zipper,
    resolve_sync,
    run_sync,
)
from .errors import ErrorHandler, HandlerSpec, make_handler

T = TypeVar('T')  # indicates input data element
TT = TypeVar('TT')  # indicates output after an op on `T`
Elem = TypeVar('Elem')


def _flatten(items: list, depth: int) -> list:
    out = []
    for x in items:
        if depth > 0 and isinstance(x, (list, tuple)):
            out.extend(_flatten(x, depth - 1))
        else:
            out.append(x)
    return out


class StreamBase(Generic[Elem]):
    """
    Everything :class:`Stream` and :class:`~arraystream.AsyncStream` have in common:
    the operation queue, the adapters, and the algorithms of the finalizers.

    The finalizer algorithms are coroutines named after the public method with a
    leading underscore; ``Stream`` runs them with ``run_sync``, ``AsyncStream``
    awaits them.
    """

    _resolve: Resolver

    def __init__(self, instream: Any, /, handler: HandlerSpec = None):
        self._handler: ErrorHandler = make_handler(handler)
        self._source: Cursor = self._make_source(instream)
        self._ops: list[Operation] = []

    def _make_source(self, instream) -> Cursor:
        raise NotImplementedError

    @property
    def handler(self) -> ErrorHandler:
        return self._handler

    def _traverse(self) -> Traversal:
        return Traversal(self._source, self._ops, self._handler, self._resolve)

    def _derive(self, cursor: Cursor) -> Self:
        return self.__class__(cursor, handler=self._handler)

    def _add_op(self, kind: str, func: Callable, kwargs: dict) -> Self:
        if kwargs:
            func = functools.partial(func, **kwargs)
        self._ops.append(Operation(kind, func))
        return self

    # Operations. These are applied, in the order they are added, to each element
    # when the stream is consumed. They modify the stream in-place and return it.

    def map(self, func: Callable[[T], Any], /, **kwargs) -> Self:
        """
        Transform each element by ``func``.

        Parameters
        ----------
        func
            Takes a data element and returns a new value, which replaces the element
            in the stream going forward.
        **kwargs
            Additional keyword arguments to ``func``, after the first argument, which
            is the data element.

        Examples
        --------
        >>> Stream(range(5)).map(lambda x: x * 2).collect()
        [0, 2, 4, 6, 8]
        """
        return self._add_op('map', func, kwargs)

    def filter(self, func: Callable[[T], bool], /, **kwargs) -> Self:
        """
        Keep the elements for which ``func`` returns a truthy value and drop the others.

        Examples
        --------
        >>> Stream(range(7)).filter(lambda n: (n % 2) == 0).collect()
        [0, 2, 4, 6]
        """
        return self._add_op('filter', func, kwargs)

    def for_each(self, func: Callable[[T], Any], /, **kwargs) -> Self:
        """
        Call ``func`` on each element for its side effect.
        The element continues in the stream unchanged, whatever ``func`` returns.
        """
        return self._add_op('for_each', func, kwargs)

    def inspect(self, func: Optional[Callable[[T], Any]] = None, /, **kwargs) -> Self:
        """
        Same as :meth:`for_each` with a default function that prints the element.

        It's often useful to pass in a logging function such as ``logger.debug``.
        """
        if func is None:
            func = print
        return self.for_each(func, **kwargs)

    def filter_map(self, func: Callable[[T], Any], /, **kwargs) -> Self:
        """
        Map and filter in one go.

        If ``func`` returns ``None`` or ``False``, the element is dropped;
        otherwise the return value replaces the element.
        Other falsy values such as ``0`` and ``''`` are kept.

        Examples
        --------
        >>> Stream(range(10)).filter_map(lambda x: x * x if x % 3 == 0 else None).collect()
        [0, 9, 36, 81]
        """
        return self._add_op('filter_map', func, kwargs)

    # Adapters. Each one consumes this stream and returns a new stream of the
    # same class, sharing the error handler, with an empty operation queue.

    def take(self, n: int) -> Self:
        """
        Take the first ``n`` elements and ignore the rest.

        No more elements are pulled from upstream once ``n`` have been taken,
        hence this works on unlimited streams.
        If ``n <= 0``, the new stream is empty.
        """
        return self._derive(Taker(self._traverse(), n))

    def skip(self, n: int) -> Self:
        """
        Discard the first ``n`` elements and pass on the rest.
        """
        return self._derive(Skipper(self._traverse(), n))

    drop = skip

    def step_by(self, n: int) -> Self:
        """
        Keep the elements at positions ``0, n, 2n, ...``, counting the elements
        this stream produces (that is, after its operations have been applied).
        """
        if n <= 0:
            raise ValueError(f'`n` must be positive, got {n}')
        return self._derive(Stepper(self._traverse(), n))

    def chain(self, other: Any) -> Self:
        """
        Produce the elements of this stream, then those of ``other``.

        ``other`` is anything this class accepts as its input stream.
        """
        return self._derive(Chainer(self._traverse(), self._make_source(other)))

    def intersperse(self, sep: Any) -> Self:
        """
        Insert a separator between every two consecutive elements.

        If ``sep`` is callable, it is called with the element preceding the
        separator and its return value is the separator; otherwise ``sep``
        itself is the separator.

        Examples
        --------
        >>> Stream('abc').intersperse('-').collect()
        ['a', '-', 'b', '-', 'c']
        """
        return self._derive(Intersperser(self._traverse(), sep, self._resolve))

    def zip(self, other: Any) -> Self:
        """
        Pair up the elements of this stream and ``other`` into tuples.
        The new stream ends as soon as either side ends.

        Examples
        --------
        >>> Stream([1, 2, 3]).zip([4, 5]).collect()
        [(1, 4), (2, 5)]
        """
        return self._derive(Zipper(self._traverse(), self._make_source(other)))

    def enumerate(self) -> Self:
        """
        Turn each element ``x`` into a tuple ``(i, x)``, ``i`` counting from 0.
        """
        return self._derive(Enumerator(self._traverse()))

    def flat_map(self, func: Callable[[T], Iterable[TT]], /, **kwargs) -> Self:
        """
        Call ``func`` on each element and produce the elements of the (finite)
        iterable it returns, one by one.

        Examples
        --------
        >>> Stream([1, 2, 3]).flat_map(lambda n: [n] * n).collect()
        [1, 2, 2, 3, 3, 3]
        """
        if kwargs:
            func = functools.partial(func, **kwargs)
        return self._derive(FlatMapper(self._traverse(), func, self._resolve))

    def fuse(self) -> Self:
        """
        End the stream at the first ``None`` element (which is not produced),
        regardless of what follows it.
        """
        return self._derive(Fuser(self._traverse()))

    def dedupe(self, key: Optional[Callable[[T], Any]] = None, /, **kwargs) -> Self:
        """
        Drop the elements that have been seen before.

        If ``key`` is given, two elements are the same if ``key`` returns
        the same value for them. The values (the elements themselves, or the
        outputs of ``key``) must be hashable; all of them are kept in memory.

        ``**kwargs`` are passed to ``key``, hence are only accepted along with ``key``.
        """
        if kwargs:
            if key is None:
                raise TypeError('keyword arguments are given but `key` is None')
            key = functools.partial(key, **kwargs)
        return self._derive(Deduper(self._traverse(), key, self._resolve))

    # Finalizer algorithms.

    async def _to_list(self) -> list:
        cursor = self._traverse()
        out = []
        while True:
            x = await cursor._get_next()
            if x is FINISHED:
                return out
            out.append(x)

    async def _check(self, func: Callable, x, index: int, name: str):
        # Returns ``None`` if ``func`` failed and the handler let it go.
        try:
            return bool(await self._resolve(func(x)))
        except Exception as e:
            self._handler.register_op_error(e, index, x, name)
            return None

    async def _collect(self):
        return self._handler.compile(await self._to_list())

    async def _count(self):
        return self._handler.compile(len(await self._to_list()))

    async def _nth(self, n: int):
        if n < 0:
            raise ValueError(f'`n` must be non-negative, got {n}')
        cursor = self._traverse()
        index = 0
        while True:
            x = await cursor._get_next()
            if x is FINISHED:
                return self._handler.compile(None)
            if index == n:
                return self._handler.compile(x)
            index += 1

    async def _reduce(self, func: Callable, initial, name: str, items):
        result = initial
        for index, x in items:
            if result is NOTSET:
                result = x
                continue
            try:
                result = await self._resolve(func(result, x))
            except Exception as e:
                self._handler.register_op_error(e, index, x, name)
        if result is NOTSET:
            raise TypeError(f'{name}() of empty stream with no initial value')
        return self._handler.compile(result)

    async def _reduce_left(self, func: Callable, initial):
        return await self._reduce(
            func, initial, 'reduce', enumerate(await self._to_list())
        )

    async def _reduce_right(self, func: Callable, initial):
        items = await self._to_list()
        return await self._reduce(
            func,
            initial,
            'reduce_right',
            ((i, items[i]) for i in range(len(items) - 1, -1, -1)),
        )

    async def _flat(self, depth: int):
        return self._handler.compile(_flatten(await self._to_list(), depth))

    async def _any(self, func: Callable):
        cursor = self._traverse()
        index = 0
        while True:
            x = await cursor._get_next()
            if x is FINISHED:
                return self._handler.compile(False)
            if await self._check(func, x, index, 'any'):
                return self._handler.compile(True)
            index += 1

    async def _all(self, func: Callable):
        cursor = self._traverse()
        index = 0
        while True:
            x = await cursor._get_next()
            if x is FINISHED:
                return self._handler.compile(True)
            if await self._check(func, x, index, 'all') is False:
                return self._handler.compile(False)
            index += 1

    async def _find_first(self, func: Callable, name: str):
        # Returns the index and the element, or ``(-1, None)``.
        cursor = self._traverse()
        index = 0
        while True:
            x = await cursor._get_next()
            if x is FINISHED:
                return -1, None
            if await self._check(func, x, index, name):
                return index, x
            index += 1

    async def _find_last(self, func: Callable, name: str):
        items = await self._to_list()
        for index in range(len(items) - 1, -1, -1):
            x = items[index]
            if await self._check(func, x, index, name):
                return index, x
        return -1, None

    async def _find(self, func: Callable):
        _, x = await self._find_first(func, 'find')
        return self._handler.compile(x)

    async def _find_index(self, func: Callable):
        index, _ = await self._find_first(func, 'find_index')
        return self._handler.compile(index)

    async def _find_last_item(self, func: Callable):
        _, x = await self._find_last(func, 'find_last')
        return self._handler.compile(x)

    async def _find_last_index(self, func: Callable):
        index, _ = await self._find_last(func, 'find_last_index')
        return self._handler.compile(index)

    async def _includes(self, item):
        cursor = self._traverse()
        while True:
            x = await cursor._get_next()
            if x is FINISHED:
                return self._handler.compile(False)
            if x == item:
                return self._handler.compile(True)

    async def _partition(self, func: Callable):
        cursor = self._traverse()
        left = []
        right = []
        index = 0
        while True:
            x = await cursor._get_next()
            if x is FINISHED:
                return self._handler.compile((left, right))
            z = await self._check(func, x, index, 'partition')
            if z:
                left.append(x)
            elif z is not None:
                right.append(x)
            index += 1


class Stream(StreamBase[Elem], Iterable[Elem]):
    """
    The class ``Stream`` is the "entry-point" for synchronous data.
    User constructs a ``Stream`` object by passing an `Iterable`_ to it,
    then calls its methods to use it, in a "chained" fashion::

        result = Stream(...).map(...).filter(...).take(...).collect()

    The "operation" methods :meth:`map`, :meth:`filter`, :meth:`for_each`, :meth:`inspect`
    and :meth:`filter_map` modify the object in-place and return it;
    nothing is run until the stream is consumed.

    The "adapter" methods :meth:`take`, :meth:`skip`, :meth:`step_by`, :meth:`chain`,
    :meth:`intersperse`, :meth:`zip`, :meth:`enumerate`, :meth:`flat_map`, :meth:`fuse`
    and :meth:`dedupe` return a new ``Stream`` which takes its elements from this one.
    Elements pulled by the new stream are gone from this one.

    The "finalizer" methods, such as :meth:`collect`, :meth:`reduce` and :meth:`find`,
    consume the stream and return a value. Under a :class:`~arraystream.Settler`,
    that value is a :class:`~arraystream.SettledResult`.

    A stream can be consumed bit by bit. The finalizers that are able to stop early
    (:meth:`nth`, :meth:`any`, :meth:`all`, :meth:`find`, :meth:`find_index`,
    :meth:`includes`) leave the remaining elements in the stream:

    >>> s = Stream(range(1, 10))
    >>> s.any(lambda x: x == 5)
    True
    >>> s.collect()
    [6, 7, 8, 9]
    """

    _resolve = staticmethod(resolve_sync)

    def __init__(self, instream: Iterable, /, handler: HandlerSpec = None):
        """
        Parameters
        ----------
        instream
            The input stream of elements, possibly unlimited.
            A list (or any other iterable that is not an iterator) is not copied;
            changes to it before the stream is consumed are visible to the stream.
            Another ``Stream`` is also accepted; it is consumed by this one.
        handler
            The error handler; see :func:`~arraystream.make_handler`.
            The default is a new :class:`~arraystream.Breaker`.
        """
        super().__init__(instream, handler=handler)

    def _make_source(self, instream) -> Cursor:
        if isinstance(instream, Cursor):
            return instream
        if isinstance(instream, Stream):
            return instream._traverse()
        if isinstance(instream, StreamBase) or not hasattr(instream, '__iter__'):
            raise TypeError(
                f'`Stream` needs a synchronous iterable, got {type(instream).__name__}; '
                'use `AsyncStream` for async input'
            )
        return SyncSource(iter(instream))

    def __iter__(self) -> Iterator[Elem]:
        return self.read()

    def read(self) -> Iterator[Elem]:
        """
        Return an iterator over the elements of the stream, with the operations applied.

        The iterator shares its position with the stream, hence ``next(stream.read())``
        returns a new element on each call.
        """
        return SyncReader(self._traverse())

    def collect(self) -> list[Elem]:
        """
        Return all the (remaining) elements in a list.

        .. warning:: Do not call this method on "big data".
        """
        return run_sync(self._collect())

    to_list = collect

    def drain(self) -> int:
        """
        Drain off the stream and return the number of elements processed.

        This method is for the side effect: the entire stream has been processed
        by all the operations, e.g. the last one may have saved results in a database.
        """
        return run_sync(self._count())

    def count(self) -> int:
        """
        Return the number of (remaining) elements.
        """
        return run_sync(self._count())

    def nth(self, n: int) -> Optional[Elem]:
        """
        Return the element at 0-based position ``n``, or ``None`` if the stream
        ends before that. The elements up to and including position ``n`` are consumed.
        """
        return run_sync(self._nth(n))

    def reduce(self, func: Callable[[TT, Elem], TT], initial: TT = NOTSET) -> TT:
        """
        Fold the elements from left to right: ``func(func(initial, x0), x1)``, etc.

        If ``initial`` is not provided, the first element is used as the initial value.

        If ``func`` raises, the error goes through the error handler;
        unless that raises, the accumulated value stays as it was before
        the failing element.

        Examples
        --------
        >>> Stream(range(1, 5)).reduce(lambda acc, x: acc + x, 10)
        20
        """
        return run_sync(self._reduce_left(func, initial))

    def reduce_right(self, func: Callable[[TT, Elem], TT], initial: TT = NOTSET) -> TT:
        """
        Like :meth:`reduce`, but from right to left.
        The whole stream is read into memory first.
        """
        return run_sync(self._reduce_right(func, initial))

    def flat(self, depth: int = 1) -> list:
        """
        Return all the elements in a list, with elements that are lists or tuples
        replaced by their contents, recursively up to ``depth`` levels.

        Examples
        --------
        >>> Stream([1, [2, [3, [4]]]]).flat(2)
        [1, 2, 3, [4]]
        """
        return run_sync(self._flat(depth))

    def any(self, func: Callable[[Elem], bool]) -> bool:
        """
        Return ``True`` as soon as ``func`` returns a truthy value for an element;
        ``False`` if that never happens.
        """
        return run_sync(self._any(func))

    some = any

    def all(self, func: Callable[[Elem], bool]) -> bool:
        """
        Return ``False`` as soon as ``func`` returns a falsy value for an element;
        ``True`` if that never happens.
        """
        return run_sync(self._all(func))

    every = all

    def find(self, func: Callable[[Elem], bool]) -> Optional[Elem]:
        """
        Return the first element for which ``func`` returns a truthy value,
        or ``None``.
        """
        return run_sync(self._find(func))

    def find_index(self, func: Callable[[Elem], bool]) -> int:
        """
        Return the position of the first element for which ``func`` returns
        a truthy value, or ``-1``.
        """
        return run_sync(self._find_index(func))

    def find_last(self, func: Callable[[Elem], bool]) -> Optional[Elem]:
        """
        Return the last element for which ``func`` returns a truthy value, or ``None``.
        The whole stream is read into memory first.
        """
        return run_sync(self._find_last_item(func))

    def find_last_index(self, func: Callable[[Elem], bool]) -> int:
        """
        Return the position of the last element for which ``func`` returns
        a truthy value, or ``-1``.
        The whole stream is read into memory first.
        """
        return run_sync(self._find_last_index(func))

    def includes(self, item: Any) -> bool:
        """
        Return whether an element equal (``==``) to ``item`` is in the stream.
        Stops at the first such element.
        """
        return run_sync(self._includes(item))

    def partition(self, func: Callable[[Elem], bool]) -> tuple[list[Elem], list[Elem]]:
        """
        Split the elements into two lists: those for which ``func`` returns
        a truthy value, and the others. Order is preserved in each list.

        Examples
        --------
        >>> Stream(range(1, 10)).partition(lambda x: x % 2 == 0)
        ([2, 4, 6, 8], [1, 3, 5, 7, 9])
        """
        return run_sync(self._partition(func))
