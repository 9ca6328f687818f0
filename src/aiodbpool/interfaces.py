"""
Interfaces of the collaborators the pool adapter is built from.

The adapter never imports a concrete driver; it talks to whatever object is
injected through these protocols. `aiodbpool.driver` is the implementation
used when nothing else is supplied.
"""
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

__all__ = [
    'Callback',
    'Driver',
    'DriverPool',
    'RawConnection',
    'Wrapper',
]


class Callback(Protocol):
    def __call__(self, error: Any = None, result: Any = None) -> None: ...


class RawConnection(Protocol):
    """Raw connection handed out by a driver pool."""

    def query(self, sql: str, *args: Any) -> Any: ...

    def begin_transaction(self, callback: Callback) -> Any: ...

    def commit(self, callback: Callback) -> Any: ...

    def rollback(self, callback: Callback) -> Any: ...

    def release(self) -> Any: ...

    def destroy(self) -> Any: ...

    def escape(self, value: Any) -> Any: ...

    def escape_id(self, value: Any) -> Any: ...

    def on(self, event: str, handler: Callable[..., Any]) -> Any: ...


class DriverPool(Protocol):
    """Callback-style pool returned by `Driver.create_pool`.

    `query` takes the SQL, optional parameters, and the callback last.
    """

    def get_connection(self, callback: Callback) -> Any: ...

    def release_connection(self, connection: Any) -> Any: ...

    def query(self, sql: str, *args: Any) -> Any: ...

    def end(self, callback: Callback) -> Any: ...

    def escape(self, value: Any) -> Any: ...

    def escape_id(self, value: Any) -> Any: ...

    def on(self, event: str, handler: Callable[..., Any]) -> Any: ...


class Driver(Protocol):
    """Module or object able to build a `DriverPool` from a configuration."""

    def create_pool(self, config: Mapping[str, Any]) -> DriverPool: ...


# (driver) -> driver | Awaitable[driver], or (driver, callback) -> None
Wrapper = Callable[..., 'Driver | Awaitable[Driver] | None']
