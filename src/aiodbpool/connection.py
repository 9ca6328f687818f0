"""
Async wrapper around a raw pooled connection.

`PoolConnection` is what `Pool.get_connection()` resolves with. It keeps the
raw driver connection on its `connection` property (used by
`Pool.release_connection`) and converts the callback-style connection methods
to coroutines.
"""
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from aiodbpool.interfaces import RawConnection
from aiodbpool.utils import call_with_callback

__all__ = ['PoolConnection']

logger = logging.getLogger(__name__)


class PoolConnection:
    """Wraps a raw connection checked out of a driver pool

    Asynchronous methods append a callback to the underlying call and await
    it. Synchronous methods are passed straight through.
    """

    def __init__(self, connection: RawConnection) -> None:
        self._connection = connection

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self._connection!r})'

    @property
    def connection(self) -> RawConnection:
        """The raw driver connection
        """
        return self._connection

    async def query(self, sql: str, *args: Any) -> Any:
        """Run a query on this connection and return the driver's result.
        """
        return await call_with_callback(self._connection.query, sql, *args)

    async def begin_transaction(self) -> Any:
        return await call_with_callback(self._connection.begin_transaction)

    async def commit(self) -> Any:
        return await call_with_callback(self._connection.commit)

    async def rollback(self) -> Any:
        return await call_with_callback(self._connection.rollback)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator['PoolConnection']:
        """Begin a transaction, commit on success and roll back on error.

            async with conn.transaction():
                await conn.query('insert into t values (?)', [1])
        """
        await self.begin_transaction()
        try:
            yield self
        except BaseException:
            logger.debug('Rolling back transaction after error')
            await self.rollback()
            raise
        await self.commit()

    def release(self) -> Any:
        return self._connection.release()

    def destroy(self) -> Any:
        return self._connection.destroy()

    def escape(self, value: Any) -> Any:
        return self._connection.escape(value)

    def escape_id(self, value: Any) -> Any:
        return self._connection.escape_id(value)

    def on(self, event: str, handler: Callable[..., Any]) -> Any:
        return self._connection.on(event, handler)
