import asyncio

import pytest

from arraystream import CycleError, OperationError, SettledResult
from arraystream.streamer import AsyncStream, Poll, Stream


async def agen(n=10):
    for x in range(n):
        yield x


async def acount():
    i = 0
    while True:
        yield i
        i += 1


async def adouble(x):
    await asyncio.sleep(0)
    return x * 2


async def ais_even(x):
    await asyncio.sleep(0)
    return x % 2 == 0


@pytest.mark.asyncio
async def test_stream():
    class B:
        async def __aiter__(self):
            for x in [1, 2, 3]:
                yield x

    class D:
        def __iter__(self):
            for x in [1, 2, 3]:
                yield x

    assert await AsyncStream(range(4)).collect() == [0, 1, 2, 3]
    assert await AsyncStream(agen(3)).collect() == [0, 1, 2]
    assert await AsyncStream(B()).collect() == [1, 2, 3]
    assert await AsyncStream(D()).collect() == [1, 2, 3]
    assert await AsyncStream(['a', 'b', 'c']).collect() == ['a', 'b', 'c']
    assert await AsyncStream((1, 2)).to_list() == [1, 2]
    assert await AsyncStream(Stream(range(3)).map(lambda x: x + 1)).collect() == [1, 2, 3]
    assert await AsyncStream(AsyncStream(agen(2))).collect() == [0, 1]

    with pytest.raises(TypeError):
        AsyncStream(3)


@pytest.mark.asyncio
async def test_list_is_copied():
    data = [1, 2]
    s = AsyncStream(data)
    data.append(3)
    assert await s.collect() == [1, 2]


@pytest.mark.asyncio
async def test_iter():
    s = AsyncStream(agen(5)).map(adouble)
    got = []
    async for x in s:
        got.append(x)
    assert got == [0, 2, 4, 6, 8]

    s = AsyncStream(agen(5))
    assert await s.read().__anext__() == 0
    assert await s.read().__anext__() == 1
    assert await s.collect() == [2, 3, 4]


@pytest.mark.asyncio
async def test_poll():
    queue = [1, 2, 3, 4]
    calls = []

    def pop():
        calls.append(1)
        return queue.pop(0) if queue else None

    s = AsyncStream.from_poll(pop)
    assert await s.collect() == [1, 2, 3, 4]
    assert len(calls) == 5
    assert await s.collect() == []
    assert len(calls) == 5

    queue = [1, 0, 2]

    async def apop():
        await asyncio.sleep(0)
        return queue.pop(0) if queue else None

    assert await AsyncStream(Poll(apop)).collect() == [1, 0, 2]

    with pytest.raises(TypeError):
        Poll(3)


@pytest.mark.asyncio
async def test_operations():
    data = list(range(10))
    s = AsyncStream(data).map(adouble).filter(ais_even).map(lambda x: x + 1)
    assert await s.collect() == [x * 2 + 1 for x in data]

    seen = []

    async def record(x):
        seen.append(x)

    assert await AsyncStream(range(3)).for_each(record).collect() == [0, 1, 2]
    assert seen == [0, 1, 2]

    async def half(x):
        return x // 2 if x % 2 == 0 else None

    assert await AsyncStream(range(7)).filter_map(half).collect() == [0, 1, 2, 3]


@pytest.mark.asyncio
async def test_adapters():
    assert await AsyncStream(acount()).take(3).collect() == [0, 1, 2]
    assert await AsyncStream(acount()).skip(5).take(2).collect() == [5, 6]
    assert await AsyncStream(acount()).step_by(10).take(3).collect() == [0, 10, 20]
    with pytest.raises(ValueError):
        AsyncStream(acount()).step_by(0)
    assert await AsyncStream(agen(2)).chain(agen(2)).collect() == [0, 1, 0, 1]
    assert await AsyncStream([1, 2, 3]).zip(agen(2)).collect() == [(1, 0), (2, 1)]
    assert await AsyncStream('ab').enumerate().collect() == [(0, 'a'), (1, 'b')]
    assert await AsyncStream([1, 2, None, 3, 4]).fuse().collect() == [1, 2]

    async def sep(x):
        return -x

    assert await AsyncStream([1, 2, 3]).intersperse(sep).collect() == [1, -1, 2, -2, 3]
    assert await AsyncStream([]).intersperse(0).collect() == []
    assert await AsyncStream([5]).intersperse(0).collect() == [5]

    async def repeat(x):
        return [x] * x

    assert await AsyncStream([1, 2]).flat_map(repeat).collect() == [1, 2, 2]

    async def mod3(x):
        return x % 3

    assert await AsyncStream(range(10)).dedupe(mod3).collect() == [0, 1, 2]


@pytest.mark.asyncio
async def test_finalizers():
    s = AsyncStream(range(1, 10))
    assert await s.any(lambda x: x == 5) is True
    assert await s.collect() == [6, 7, 8, 9]

    assert await AsyncStream(range(1, 10)).partition(ais_even) == (
        [2, 4, 6, 8],
        [1, 3, 5, 7, 9],
    )
    assert await AsyncStream(agen(10)).count() == 10
    assert await AsyncStream(agen(10)).drain() == 10
    assert await AsyncStream(agen(10)).nth(4) == 4
    assert await AsyncStream(agen(3)).nth(4) is None

    async def add(acc, x):
        return acc + x

    assert await AsyncStream(range(1, 5)).reduce(add, 10) == 20
    assert await AsyncStream('abc').reduce_right(add) == 'cba'
    with pytest.raises(TypeError):
        await AsyncStream([]).reduce(add)

    assert await AsyncStream([1, [2, [3]]]).flat(2) == [1, 2, 3]
    assert await AsyncStream(range(4)).all(lambda x: x < 4) is True
    assert await AsyncStream(range(4)).every(ais_even) is False
    assert await AsyncStream(range(4)).some(ais_even) is True
    assert await AsyncStream(range(10)).find(lambda x: x > 6) == 7
    assert await AsyncStream(range(10)).find_index(lambda x: x > 6) == 7
    assert await AsyncStream(range(10)).find_last(ais_even) == 8
    assert await AsyncStream(range(10)).find_last_index(lambda x: x > 60) == -1
    assert await AsyncStream(agen(5)).includes(3) is True
    assert await AsyncStream(agen(5)).includes(7) is False


@pytest.mark.asyncio
async def test_error_handlers():
    async def f(x):
        if x == 3:
            raise ValueError('bad')
        return x

    seen = []
    s = AsyncStream(agen(10)).for_each(seen.append).map(f)
    with pytest.raises(OperationError) as e:
        await s.collect()
    assert seen == [0, 1, 2, 3]
    assert e.value.index == 3
    assert e.value.op == 'map'

    assert await AsyncStream(agen(5), handler='ignore').map(f).collect() == [0, 1, 2, 4]

    res = await AsyncStream(agen(5), handler='settle').map(f).collect()
    assert isinstance(res, SettledResult)
    assert res.data == [0, 1, 2, 4]
    assert str(res.errors[0]) == (
        'Error occurred while performing map on 3 at index 3 in iterator: bad'
    )


@pytest.mark.asyncio
async def test_cycle_error():
    async def broken():
        yield 1
        raise ValueError('broken')

    with pytest.raises(CycleError) as e:
        await AsyncStream(broken()).collect()
    assert e.value.index == 1

    res = await AsyncStream(broken(), handler='settle').collect()
    assert res.data == [1]
    assert isinstance(res.errors[0], CycleError)

    state = {'n': 0}

    async def flaky():
        state['n'] += 1
        if state['n'] == 2:
            raise RuntimeError('flaky')
        if state['n'] > 4:
            return None
        return state['n']

    res = await AsyncStream.from_poll(flaky, handler='settle').collect()
    assert res.data == [1, 3, 4]
    assert res.errors[0].index == 1


@pytest.mark.asyncio
async def test_upstream_with_other_handler():
    def f(x):
        if x == 2:
            raise ValueError(x)
        return x

    s = Stream(range(5)).map(f)
    res = await AsyncStream(s, handler='settle').collect()
    assert res.data == [0, 1, 3, 4]
    err = res.errors[0]
    assert isinstance(err, CycleError)
    assert isinstance(err.original_error, OperationError)


@pytest.mark.asyncio
async def test_sync_source_error_continues():
    class Flaky:
        def __init__(self):
            self.k = 0

        def __iter__(self):
            return self

        def __next__(self):
            self.k += 1
            if self.k > 4:
                raise StopIteration
            if self.k == 2:
                raise ValueError('flaky')
            return self.k

    res = await AsyncStream(Flaky(), handler='settle').collect()
    assert res.data == [1, 3, 4]
    assert len(res.errors) == 1
    assert res.errors[0].index == 1

    assert await AsyncStream(Flaky(), handler='ignore').collect() == [1, 3, 4]
    assert Stream(Flaky(), handler='ignore').collect() == [1, 3, 4]
