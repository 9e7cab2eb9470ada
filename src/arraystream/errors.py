"""
Error types and error handlers for :mod:`arraystream`.

Two kinds of failures can happen while a stream is being consumed:

- a *cycle error*, raised while pulling the next element from the source;
- an *operation error*, raised by a user function in the operation queue
  (:meth:`~arraystream.Stream.map`, :meth:`~arraystream.Stream.filter`, etc.)
  or by the function passed to a finalizer such as
  :meth:`~arraystream.Stream.reduce`.

What happens next is decided by the error handler the stream was created with.
The set of handlers is closed:

``Breaker`` (the default)
    Raise a :class:`CycleError` or :class:`OperationError` right away.
    Nothing after the failing element is processed.
``Ignorer``
    Drop the failing element and go on. The error is only logged at DEBUG level.
``Settler``
    Drop the failing element, keep the error, and go on. Finalizers then return a
    :class:`SettledResult` holding both the data and the errors.

A handler is shared by a stream and all the streams derived from it via
adapters such as :meth:`~arraystream.Stream.take`, hence a ``Settler`` collects
errors from the whole chain.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, Literal, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

Data = TypeVar('Data')


class StreamError(Exception):
    """
    Base class of the exceptions that carry the position of a failure in a stream.

    The original exception is available as ``original_error``; when raised by
    :class:`Breaker` it is also the ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        original_error: BaseException,
        index: Optional[int] = None,
    ):
        self.original_error = original_error
        self.index = index
        super().__init__(f'{message}: {original_error}')


class CycleError(StreamError):
    """Raised (or collected) when pulling from the source of a stream fails."""

    def __init__(self, original_error: BaseException, index: int):
        super().__init__(
            f'Error occurred at item at index {index} in iterator',
            original_error,
            index,
        )


class OperationError(StreamError):
    """Raised (or collected) when an operation fails on an element."""

    def __init__(
        self, original_error: BaseException, index: int, item: Any, op: str
    ):
        self.item = item
        self.op = op
        super().__init__(
            f'Error occurred while performing {op} on {item} at index {index} in iterator',
            original_error,
            index,
        )


class SettledResult(Generic[Data]):
    """
    Result of a finalizer on a stream that uses :class:`Settler`.

    Attributes
    ----------
    data
        What the finalizer would have returned under the other handlers.
    errors
        The errors collected by the handler up to the moment the result was
        compiled, in the order they happened.
    """

    def __init__(self, data: Data, errors: list[StreamError]):
        self.data = data
        self.errors = errors

    def __repr__(self):
        return f'{self.__class__.__name__}(data={self.data!r}, errors={self.errors!r})'

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def raise_if_errors(self) -> None:
        """
        Raise a :class:`StreamError` summarizing the collected errors, if any.

        The first collected error is the cause.
        """
        if self.has_errors:
            first = self.errors[0]
            raise StreamError(
                f'Stream completed with {len(self.errors)} error(s), the first being',
                first,
                first.index,
            ) from first


class ErrorHandler:
    """
    Interface shared by :class:`Breaker`, :class:`Ignorer` and :class:`Settler`.

    Streams accept only these three; see :func:`make_handler`.
    """

    def register_cycle_error(self, error: Exception, index: int) -> None:
        raise NotImplementedError

    def register_op_error(
        self, error: Exception, index: int, item: Any, op: str
    ) -> None:
        raise NotImplementedError

    def compile(self, data: Data) -> Any:
        raise NotImplementedError


class Breaker(ErrorHandler):
    """
    Fail fast: any error aborts the consumption of the stream.

    ``compile`` returns the data as is.
    """

    def register_cycle_error(self, error, index):
        raise CycleError(error, index) from error

    def register_op_error(self, error, index, item, op):
        raise OperationError(error, index, item, op) from error

    def compile(self, data: Data) -> Data:
        return data


class Ignorer(ErrorHandler):
    """
    Drop failing elements without a trace (other than a DEBUG log).

    ``compile`` returns the data as is.
    """

    def register_cycle_error(self, error, index):
        logger.debug('ignoring error at item at index %d: %r', index, error)

    def register_op_error(self, error, index, item, op):
        logger.debug(
            'ignoring error in %s on %r at index %d: %r', op, item, index, error
        )

    def compile(self, data: Data) -> Data:
        return data


class Settler(ErrorHandler):
    """
    Drop failing elements but keep their errors.

    ``compile`` returns a :class:`SettledResult` with the data and a snapshot
    of the errors collected so far.
    """

    def __init__(self):
        self.errors: list[StreamError] = []

    def register_cycle_error(self, error, index):
        err = CycleError(error, index)
        logger.debug('%s', err)
        self.errors.append(err)

    def register_op_error(self, error, index, item, op):
        err = OperationError(error, index, item, op)
        logger.debug('%s', err)
        self.errors.append(err)

    def compile(self, data: Data) -> SettledResult[Data]:
        return SettledResult(data, list(self.errors))


HandlerSpec = Union[ErrorHandler, Literal['break', 'ignore', 'settle'], None]

_HANDLERS = {
    'break': Breaker,
    'ignore': Ignorer,
    'settle': Settler,
}


def make_handler(handler: HandlerSpec = None) -> ErrorHandler:
    """
    Return the handler a stream should use.

    Parameters
    ----------
    handler
        ``None`` for a new :class:`Breaker`; one of ``'break'``, ``'ignore'``, ``'settle'``
        for a new handler of that kind; or an instance of :class:`Breaker`,
        :class:`Ignorer` or :class:`Settler`, which is used as is (hence may be
        shared between streams).
    """
    if handler is None:
        return Breaker()
    if isinstance(handler, str):
        try:
            return _HANDLERS[handler]()
        except KeyError:
            raise ValueError(
                f"handler must be one of {sorted(_HANDLERS)}, got {handler!r}"
            ) from None
    if not isinstance(handler, (Breaker, Ignorer, Settler)):
        raise TypeError(
            f'handler must be a Breaker, Ignorer or Settler, got {type(handler).__name__}'
        )
    return handler
