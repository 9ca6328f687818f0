"""
Async pool adapter for callback-style database drivers.

    import aiodbpool

    pool = await aiodbpool.create_pool({'drivername': 'sqlite', 'database': 'app.db'})
    rows = await pool.query('select * from users')
    await pool.end()

A `wrapper` entry in the configuration may replace or decorate the driver
before the pool is built:

    pool = await aiodbpool.create_pool({..., 'wrapper': lambda driver: traced(driver)})
"""
__version__ = '0.1.0'

from aiodbpool.connection import PoolConnection
from aiodbpool.exceptions import CallbackError, ConfigurationError
from aiodbpool.exceptions import PoolClosedError, PoolError
from aiodbpool.options import PoolOptions
from aiodbpool.pool import Pool, create_pool
from aiodbpool.utils import call_with_callback

__all__ = [
    'create_pool',
    'Pool',
    'PoolConnection',
    'PoolOptions',
    'call_with_callback',
    'PoolError',
    'PoolClosedError',
    'ConfigurationError',
    'CallbackError',
]
