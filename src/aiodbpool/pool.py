"""
Async pool adapter over a callback-style driver pool.

This module provides:
1. The `create_pool()` coroutine that resolves the driver (optionally through a
   caller-supplied `wrapper`) and builds the driver pool
2. The `Pool` class that forwards to the driver pool, converting the
   callback-style methods (`query`, `end`, `get_connection`) to coroutines

Usage:
    pool = await create_pool({'drivername': 'sqlite', 'database': 'app.db'})
    rows = await pool.query('select * from users where id = ?', [1])
    async with pool.acquire() as conn:
        await conn.query('update users set name = ? where id = ?', ['x', 1])
    await pool.end()

The driver and the connection wrapper class are injected explicitly; by
default `aiodbpool.driver` and `PoolConnection` are used.
"""
import inspect
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager
from typing import Any, Self

from aiodbpool import driver as default_driver
from aiodbpool.connection import PoolConnection
from aiodbpool.interfaces import Driver, DriverPool, Wrapper
from aiodbpool.utils import call_with_callback

__all__ = [
    'Pool',
    'create_pool',
    'resolve_driver',
]

logger = logging.getLogger(__name__)


def _accepts_callback(wrapper: Wrapper) -> bool:
    """Check whether `wrapper` declares a second positional (callback) parameter.

    Coroutine functions always use the return-value convention.
    """
    if inspect.iscoroutinefunction(wrapper):
        return False

    try:
        signature = inspect.signature(wrapper)
    except (TypeError, ValueError):
        return False

    positional = [p for p in signature.parameters.values()
                  if p.kind in {p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD}]
    return len(positional) >= 2


async def resolve_driver(driver: Driver, wrapper: Wrapper | None = None) -> Driver:
    """Return the driver to build the pool from.

    Without a wrapper the driver is used as is. A wrapper taking two
    positional parameters is called as ``wrapper(driver, callback)`` and the
    driver passed to ``callback(None, driver)`` is used. Any other wrapper is
    called as ``wrapper(driver)``; its return value is awaited when awaitable.

    Errors from the wrapper propagate unchanged.
    """
    if wrapper is None:
        return driver

    if _accepts_callback(wrapper):
        logger.debug(f'Resolving driver through callback wrapper {wrapper!r}')
        return await call_with_callback(wrapper, driver)

    resolved = wrapper(driver)
    if inspect.isawaitable(resolved):
        resolved = await resolved
    logger.debug(f'Resolved driver through wrapper {wrapper!r}')
    return resolved


class Pool:
    """Async facade over a driver pool

    Holds a single reference to the driver pool for its whole lifetime and
    keeps no other state.
    """

    def __init__(self, pool: DriverPool,
                 connection_class: Callable[[Any], Any] | None = None) -> None:
        self._pool = pool
        self._connection_class = connection_class or PoolConnection

    @classmethod
    async def create(cls, config: Mapping[str, Any] | None = None, *,
                     driver: Driver | None = None,
                     connection_class: Callable[[Any], Any] | None = None) -> Self:
        """Resolve the driver and build a pool from `config`.

        Args:
            config: Options passed to ``driver.create_pool``. An optional
                    ``wrapper`` entry is removed before forwarding.
            driver: Driver exposing ``create_pool`` (default: aiodbpool.driver)
            connection_class: Type built from each raw connection returned
                    by `get_connection` (default: PoolConnection)

        Returns
            Pool bound to the driver pool
        """
        if config is None:
            config = {}
        if driver is None:
            driver = default_driver

        wrapper = None
        if 'wrapper' in config:
            config = dict(config)
            wrapper = config.pop('wrapper')

        resolved = await resolve_driver(driver, wrapper)
        instance = resolved.create_pool(config)
        logger.debug(f'Created pool {instance!r}')

        return cls(instance, connection_class)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: BaseException | None,
                        exc_tb: Any | None) -> None:
        """End the pool when leaving the context manager
        """
        await self.end()

    @property
    def pool(self) -> DriverPool:
        """The underlying driver pool
        """
        return self._pool

    def escape(self, value: Any) -> Any:
        return self._pool.escape(value)

    def escape_id(self, value: Any) -> Any:
        return self._pool.escape_id(value)

    def on(self, event: str, handler: Callable[..., Any]) -> Any:
        """Register an event handler on the driver pool.
        """
        return self._pool.on(event, handler)

    async def query(self, sql: str, *args: Any) -> Any:
        """Run a query on any pooled connection and return the driver's result.
        """
        return await call_with_callback(self._pool.query, sql, *args)

    async def end(self) -> Any:
        """Close the driver pool.
        """
        result = await call_with_callback(self._pool.end)
        logger.debug(f'Ended pool {self._pool!r}')
        return result

    async def get_connection(self) -> Any:
        """Check out a connection, wrapped in the configured connection class.
        """
        connection = await call_with_callback(self._pool.get_connection)
        return self._connection_class(connection)

    def release_connection(self, connection: Any) -> Any:
        """Return a wrapped connection to the driver pool.
        """
        return self._pool.release_connection(connection.connection)

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[Any]:
        """Check out a connection and release it when the block exits.
        """
        connection = await self.get_connection()
        try:
            yield connection
        finally:
            self.release_connection(connection)


async def create_pool(config: Mapping[str, Any] | None = None, *,
                      driver: Driver | None = None,
                      connection_class: Callable[[Any], Any] | None = None) -> Pool:
    """Create a `Pool`; see `Pool.create`.
    """
    return await Pool.create(config, driver=driver, connection_class=connection_class)
