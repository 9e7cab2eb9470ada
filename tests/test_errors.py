import logging

import pytest

from arraystream.errors import (
    Breaker,
    CycleError,
    Ignorer,
    OperationError,
    SettledResult,
    Settler,
    StreamError,
    make_handler,
)


def test_make_handler():
    assert isinstance(make_handler(), Breaker)
    assert isinstance(make_handler(None), Breaker)
    assert isinstance(make_handler('break'), Breaker)
    assert isinstance(make_handler('ignore'), Ignorer)
    assert isinstance(make_handler('settle'), Settler)

    h = Settler()
    assert make_handler(h) is h
    assert make_handler('settle') is not make_handler('settle')

    with pytest.raises(ValueError):
        make_handler('skip')
    with pytest.raises(TypeError):
        make_handler(3)
    with pytest.raises(TypeError):
        make_handler(Settler)


def test_messages():
    e = CycleError(ValueError('bad source'), 4)
    assert str(e) == 'Error occurred at item at index 4 in iterator: bad source'
    assert e.index == 4
    assert isinstance(e.original_error, ValueError)
    assert isinstance(e, StreamError)

    e = OperationError(ZeroDivisionError('division by zero'), 2, 0, 'map')
    assert (
        str(e)
        == 'Error occurred while performing map on 0 at index 2 in iterator: division by zero'
    )
    assert e.item == 0
    assert e.op == 'map'
    assert e.index == 2


def test_breaker():
    h = Breaker()
    err = KeyError('x')
    with pytest.raises(CycleError) as e:
        h.register_cycle_error(err, 0)
    assert e.value.__cause__ is err
    with pytest.raises(OperationError) as e:
        h.register_op_error(err, 3, 'abc', 'filter')
    assert e.value.__cause__ is err
    assert e.value.op == 'filter'
    assert h.compile([1, 2]) == [1, 2]


def test_ignorer(caplog):
    h = Ignorer()
    with caplog.at_level(logging.DEBUG, logger='arraystream.errors'):
        h.register_cycle_error(ValueError('a'), 0)
        h.register_op_error(ValueError('b'), 1, 'x', 'map')
    assert len(caplog.records) == 2
    assert h.compile(3) == 3


def test_settler():
    h = Settler()
    h.register_op_error(ValueError('a'), 1, 8, 'map')
    r1 = h.compile([1])
    h.register_cycle_error(TypeError('b'), 5)
    r2 = h.compile([1, 2])

    assert isinstance(r1, SettledResult)
    assert r1.data == [1]
    assert len(r1.errors) == 1
    assert len(r2.errors) == 2
    assert isinstance(r2.errors[0], OperationError)
    assert isinstance(r2.errors[1], CycleError)
    assert r2.errors[1].index == 5
    assert h.errors == r2.errors


def test_settled_result():
    r = SettledResult([1, 2], [])
    assert not r.has_errors
    r.raise_if_errors()
    assert 'data=[1, 2]' in repr(r)

    e = OperationError(ValueError('no'), 1, 'a', 'map')
    r = SettledResult([], [e])
    assert r.has_errors
    with pytest.raises(StreamError) as ee:
        r.raise_if_errors()
    assert ee.value.__cause__ is e
    assert ee.value.index == 1
