"""
Callback-to-future conversion.

Callback-style APIs report completion through a trailing
``callback(error, result)`` argument. `call_with_callback` issues such a call
and returns an asyncio future that settles when the callback fires:

    rows = await call_with_callback(pool.query, 'select 1', [])

The callback may be invoked synchronously, later on the loop, or from a
worker thread; completion is always marshalled back onto the future's loop.
"""
import asyncio
import logging
from collections.abc import Callable
from typing import Any

from aiodbpool.exceptions import CallbackError

__all__ = [
    'call_with_callback',
    'make_callback',
]

logger = logging.getLogger(__name__)


def _as_exception(error: Any) -> BaseException:
    if isinstance(error, BaseException):
        return error
    return CallbackError(error)


def make_callback(future: asyncio.Future) -> Callable[..., None]:
    """Build a ``callback(error, result)`` that settles `future`.

    Only the first invocation counts; later ones are logged and dropped.
    """
    loop = future.get_loop()

    def settle(error: Any, result: Any) -> None:
        if future.cancelled():
            logger.debug(f'Callback fired after cancellation: error={error!r}')
            return
        if future.done():
            logger.warning(f'Callback invoked more than once, ignoring: error={error!r}')
            return
        if error is not None:
            future.set_exception(_as_exception(error))
        else:
            future.set_result(result)

    def callback(error: Any = None, result: Any = None) -> None:
        loop.call_soon_threadsafe(settle, error, result)

    return callback


def call_with_callback(func: Callable[..., Any], *args: Any) -> asyncio.Future:
    """Call ``func(*args, callback)`` and return a future for the callback's result.

    An exception raised synchronously by `func` rejects the future; the return
    value of `func` itself is ignored. Must be called with a running loop.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()
    try:
        func(*args, make_callback(future))
    except Exception as exc:
        if not future.done():
            future.set_exception(exc)
    return future
