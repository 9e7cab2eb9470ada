"""
The module ``arraystream.streamer`` provides lazy, chainable processing of a stream of data,
synchronous (:class:`Stream`) or asynchronous (:class:`AsyncStream`).

An input data stream goes through a series of operations.
Nothing runs while the operations are being set up; elements are pulled through
the whole series one at a time when the stream is "consumed", that is, iterated over
or finalized by a method like :meth:`~Stream.collect`.
Since nothing is pulled beyond what is asked for, the input stream can be unlimited.


Introduction
============

>>> from arraystream.streamer import Stream
>>> data = Stream(range(100))

The input stream is often a list, but more generally, it can be any
`Iterable`_, possibly unlimited.
We add a few operations to it:

>>> data.map(lambda x: x * 2).filter(lambda x: x % 3 == 0)  # doctest: +ELLIPSIS
<arraystream._streamer.Stream object at 0x7...>

These modify the object in place and return it, hence they can be chained.
Then we take the first few results:

>>> data.take(5).collect()
[0, 6, 12, 18, 24]

:meth:`~Stream.take` is an "adapter": it returns a new stream which pulls from
the old one. The elements it pulls are gone from the old stream:

>>> data.collect()[:3]
[30, 36, 42]

There are three kinds of methods:

1. Operations, which change each element or decide whether it stays:

    - :meth:`~Stream.map`
    - :meth:`~Stream.filter`
    - :meth:`~Stream.filter_map`
    - :meth:`~Stream.for_each`
    - :meth:`~Stream.inspect`

2. Adapters, which return a new stream:

    - :meth:`~Stream.take`, :meth:`~Stream.skip`, :meth:`~Stream.step_by`
    - :meth:`~Stream.chain`, :meth:`~Stream.zip`
    - :meth:`~Stream.intersperse`, :meth:`~Stream.enumerate`
    - :meth:`~Stream.flat_map`, :meth:`~Stream.fuse`, :meth:`~Stream.dedupe`

3. Finalizers, which consume the stream and return a value:

    - :meth:`~Stream.collect`, :meth:`~Stream.count`, :meth:`~Stream.drain`
    - :meth:`~Stream.nth`, :meth:`~Stream.flat`, :meth:`~Stream.partition`
    - :meth:`~Stream.reduce`, :meth:`~Stream.reduce_right`
    - :meth:`~Stream.any`, :meth:`~Stream.all`, :meth:`~Stream.includes`
    - :meth:`~Stream.find`, :meth:`~Stream.find_index`,
      :meth:`~Stream.find_last`, :meth:`~Stream.find_last_index`


Handling errors
===============

A function may raise on some element, or the input stream may raise while producing
one. What happens then depends on the *handler* the stream was created with:

>>> def invert(x):
...     return 1 / x
>>> Stream([1, 0, 2]).map(invert).collect()
Traceback (most recent call last):
  ...
arraystream.errors.OperationError: Error occurred while performing map on 0 at index 1 in iterator: division by zero

>>> Stream([1, 0, 2], handler='ignore').map(invert).collect()
[1.0, 0.5]

>>> result = Stream([1, 0, 2], handler='settle').map(invert).collect()
>>> result.data
[1.0, 0.5]
>>> result.errors
[OperationError('Error occurred while performing map on 0 at index 1 in iterator: division by zero')]

See :mod:`arraystream.errors` for details.


Async
=====

:class:`AsyncStream` has the same methods; the finalizers are coroutines,
and the functions passed in can be sync or async.
Besides iterables and async iterables, it takes its input from a polling function:

>>> async def main():
...     queue = [1, 2, 3]
...     s = AsyncStream.from_poll(lambda: queue.pop(0) if queue else None)
...     return await s.map(lambda x: x + 1).collect()

The polling function is called until it returns ``None``.

.. _Iterable: https://docs.python.org/3/library/collections.abc.html#collections.abc.Iterable
"""

from ._async_streamer import AsyncStream, Poll
from ._streamer import Stream

__all__ = [
    'AsyncStream',
    'Poll',
    'Stream',
]
