"""
The package ``arraystream`` provides lazy, chainable, iterator-style processing of
data streams, synchronous (:class:`Stream`) and asynchronous (:class:`AsyncStream`),
with a choice of error handling: fail fast, ignore, or collect the errors.

To install, do

::

   python3 -m pip install arraystream
"""

__version__ = '0.1.0'


from . import errors, streamer
from .errors import (
    Breaker,
    CycleError,
    ErrorHandler,
    Ignorer,
    OperationError,
    SettledResult,
    Settler,
    StreamError,
    make_handler,
)
from .streamer import AsyncStream, Poll, Stream

__all__ = [
    'AsyncStream',
    'Breaker',
    'CycleError',
    'ErrorHandler',
    'Ignorer',
    'OperationError',
    'Poll',
    'SettledResult',
    'Settler',
    'Stream',
    'StreamError',
    'make_handler',
]
