"""Unit tests for the pool adapter against a stubbed driver.

- create_pool(config, driver=...) forwards config to driver.create_pool
- escape / escape_id / on forward synchronously with the caller's arguments
- query / end / get_connection append a callback and await it
- release_connection unwraps the connection wrapper
"""
import asyncio
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from aiodbpool import Pool, PoolConnection, create_pool
from tests.fixtures.driver import MockPoolConnection, calls_last_arg_with


class TestCreatePool:
    """Test how the driver pool is created."""

    async def test_without_arguments(self, driver_mock):
        await create_pool(driver=driver_mock)

        driver_mock.create_pool.assert_called_once_with({})

    async def test_with_arguments(self, driver_mock):
        config = {'test': 'test'}

        await create_pool(config, driver=driver_mock)

        driver_mock.create_pool.assert_called_once()
        assert driver_mock.create_pool.call_args.args == (config,)
        assert driver_mock.create_pool.call_args.args[0] is config

    async def test_default_driver(self, driver_mock, pool_mock):
        with patch('aiodbpool.pool.default_driver', driver_mock):
            pool = await create_pool({'test': 'test'})

        driver_mock.create_pool.assert_called_once_with({'test': 'test'})
        assert pool.pool is pool_mock

    async def test_classmethod(self, driver_mock, pool_mock):
        pool = await Pool.create({'test': 'test'}, driver=driver_mock)

        assert isinstance(pool, Pool)
        assert pool.pool is pool_mock

    async def test_create_pool_error_propagates(self, driver_mock):
        err = ValueError('bad config')
        driver_mock.create_pool.side_effect = err

        with pytest.raises(ValueError) as excinfo:
            await create_pool({'test': 'test'}, driver=driver_mock)

        assert excinfo.value is err

    async def test_default_connection_class(self, driver_mock):
        pool = await create_pool(driver=driver_mock)

        connection = await pool.get_connection()

        assert isinstance(connection, PoolConnection)
        assert connection.connection == 'getConnectionResult'


class TestSyncForwarding:
    """Test pass-through methods."""

    @pytest.mark.parametrize(('method', 'args'), [
        ('escape', ('test',)),
        ('escape_id', ('test',)),
        ('on', ('test', lambda *a: None)),
    ], ids=['escape', 'escape_id', 'on'])
    async def test_calls_underlying_method(self, pool, pool_mock, method, args):
        result = getattr(pool, method)(*args)

        underlying = getattr(pool_mock, method)
        underlying.assert_called_once_with(*args)
        assert len(underlying.call_args.args) == len(args)
        assert result == 'test'

    async def test_return_value_unchanged(self, pool, pool_mock):
        sentinel = object()
        pool_mock.escape.side_effect = None
        pool_mock.escape.return_value = sentinel

        assert pool.escape("O'Brien") is sentinel


class TestCallbackForwarding:
    """Test methods converted from callback style to coroutines."""

    @pytest.mark.parametrize(('method', 'args'), [
        ('query', ('test', ['test'])),
        ('query', ('test',)),
        ('end', ()),
    ], ids=['query_with_params', 'query_without_params', 'end'])
    async def test_calls_underlying_method(self, pool, pool_mock, method, args):
        result = await getattr(pool, method)(*args)

        underlying = getattr(pool_mock, method)
        underlying.assert_called_once()
        assert len(underlying.call_args.args) == len(args) + 1
        assert underlying.call_args.args[:-1] == args
        assert callable(underlying.call_args.args[-1])
        assert result == f'{method}Result'

    async def test_get_connection(self, pool, pool_mock):
        connection = await pool.get_connection()

        pool_mock.get_connection.assert_called_once()
        assert len(pool_mock.get_connection.call_args.args) == 1
        assert isinstance(connection, MockPoolConnection)
        assert connection.connection == 'getConnectionResult'

    async def test_each_get_connection_builds_new_wrapper(self, pool):
        first = await pool.get_connection()
        second = await pool.get_connection()

        assert first is not second

    @pytest.mark.parametrize('method', ['query', 'end', 'get_connection'])
    async def test_callback_error_rejects(self, pool, pool_mock, method):
        err = RuntimeError('faaaaaaail')
        getattr(pool_mock, method).side_effect = calls_last_arg_with(err)
        args = ('test',) if method == 'query' else ()

        with pytest.raises(RuntimeError) as excinfo:
            await getattr(pool, method)(*args)

        assert excinfo.value is err

    async def test_synchronous_raise_rejects(self, pool, pool_mock):
        err = TypeError('boom')
        pool_mock.query.side_effect = err

        with pytest.raises(TypeError) as excinfo:
            await pool.query('test')

        assert excinfo.value is err

    async def test_callback_from_later_loop_iteration(self, pool, pool_mock):
        loop = asyncio.get_running_loop()
        pool_mock.query.side_effect = lambda sql, callback: loop.call_later(
            0.01, callback, None, [{'id': 1}])

        assert await pool.query('select 1') == [{'id': 1}]


class TestReleaseConnection:

    async def test_unwraps_connection(self, pool, pool_mock):
        connection = SimpleNamespace(connection='test')

        result = pool.release_connection(connection)

        pool_mock.release_connection.assert_called_once_with('test')
        assert len(pool_mock.release_connection.call_args.args) == 1
        assert result == 'releaseConnectionReturn'

    async def test_acquire_releases(self, pool, pool_mock):
        async with pool.acquire() as connection:
            assert isinstance(connection, MockPoolConnection)
            pool_mock.release_connection.assert_not_called()

        pool_mock.release_connection.assert_called_once_with('getConnectionResult')

    async def test_acquire_releases_on_error(self, pool, pool_mock):
        with pytest.raises(ValueError, match='inside'):
            async with pool.acquire():
                raise ValueError('inside')

        pool_mock.release_connection.assert_called_once_with('getConnectionResult')


class TestContextManager:

    async def test_ends_pool_on_exit(self, pool, pool_mock):
        async with pool as entered:
            assert entered is pool
            pool_mock.end.assert_not_called()

        pool_mock.end.assert_called_once()
