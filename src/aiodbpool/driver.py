"""
Callback-style database pool built on SQLAlchemy.

This is the driver `aiodbpool.create_pool()` wraps when no other driver is
injected. It follows the classic callback pool client shape:

    pool = driver.create_pool({'drivername': 'sqlite', 'database': 'app.db'})
    pool.query('select * from users where id = ?', [1], callback)
    pool.get_connection(callback)      # callback(None, DriverConnection)
    pool.release_connection(connection)
    pool.end(callback)

Blocking work runs on a thread pool owned by the `CallbackPool`; callbacks
are invoked from the worker thread as ``callback(error, result)``.

SQLAlchemy provides the engine and the connection pool (`QueuePool`, or
`StaticPool` for in-memory SQLite). Query parameters given as a mapping bind
``:name`` placeholders; a sequence binds the DBAPI's positional placeholders
(``?`` for sqlite3, ``%s`` for psycopg).
"""
import logging
import threading
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.event import listen
from sqlalchemy.pool import QueuePool, StaticPool

from aiodbpool.exceptions import PoolClosedError
from aiodbpool.options import PoolOptions
from aiodbpool.sql import escape_identifier, escape_literal

__all__ = [
    'CallbackPool',
    'DriverConnection',
    'POOL_EVENTS',
    'create_engine_for_options',
    'create_pool',
    'create_url_from_options',
]

logger = logging.getLogger(__name__)

# pool event name -> SQLAlchemy pool event
POOL_EVENTS = {
    'connection': 'connect',
    'acquire': 'checkout',
    'release': 'checkin',
}


def create_url_from_options(options: PoolOptions,
                            url_creator: Callable[..., sa.URL] = sa.URL.create) -> sa.URL:
    """Convert PoolOptions to SQLAlchemy URL.
    """
    if options.drivername == 'sqlite':
        return url_creator(
            drivername='sqlite',
            database=options.database
        )

    elif options.drivername == 'postgresql':
        query = {}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)
        if options.appname:
            query['application_name'] = options.appname

        return url_creator(
            drivername='postgresql+psycopg',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port or None,
            database=options.database,
            query=query
        )

    raise ValueError(f'Unsupported database type: {options.drivername}')


def _is_memory_database(options: PoolOptions) -> bool:
    return options.drivername == 'sqlite' and options.database in {':memory:', ''}


def create_engine_for_options(options: PoolOptions,
                              engine_factory: Callable[..., Engine] = sa.create_engine,
                              **kwargs: Any) -> Engine:
    """Create a SQLAlchemy engine with a pool configured from `options`.
    """
    url = create_url_from_options(options)

    engine_kwargs: dict[str, Any] = {'echo': False}

    if options.drivername == 'sqlite':
        # connections are used from worker threads
        engine_kwargs['connect_args'] = {'check_same_thread': False}

    if _is_memory_database(options):
        # one shared connection, otherwise every checkout sees an empty database
        engine_kwargs['poolclass'] = StaticPool
    else:
        engine_kwargs['poolclass'] = QueuePool
        engine_kwargs['pool_size'] = options.pool_max_connections
        engine_kwargs['max_overflow'] = options.pool_max_overflow
        engine_kwargs['pool_recycle'] = options.pool_max_idle_time
        engine_kwargs['pool_timeout'] = options.pool_wait_timeout
        engine_kwargs['pool_pre_ping'] = True
        engine_kwargs['pool_reset_on_return'] = 'rollback'

    engine_kwargs.update(kwargs)

    engine = engine_factory(url, **engine_kwargs)
    logger.debug(f'Created engine for {options.drivername}')
    return engine


def _split_query_args(args: tuple) -> tuple[Any, Callable[..., None]]:
    """Split ``(params?, callback)`` into params and callback.
    """
    if not args:
        raise TypeError('query() requires a callback')
    if len(args) > 2:
        raise TypeError(f'query() takes sql, params and callback, got {len(args) + 1} arguments')
    *params, callback = args
    return (params[0] if params else None), callback


def _execute(sa_connection: sa.Connection, sql: str, params: Any) -> list[dict[str, Any]] | int:
    """Execute `sql` and return rows as dicts, or the affected row count.
    """
    if params is None:
        result = sa_connection.exec_driver_sql(sql)
    elif isinstance(params, Mapping):
        result = sa_connection.execute(sa.text(sql), dict(params))
    elif isinstance(params, Sequence) and not isinstance(params, (str, bytes)):
        result = sa_connection.exec_driver_sql(sql, tuple(params))
    else:
        result = sa_connection.exec_driver_sql(sql, (params,))

    if result.returns_rows:
        return [dict(row) for row in result.mappings()]
    return result.rowcount


def _pool_listener(sa_event: str, handler: Callable[..., Any]) -> Callable[..., None]:
    """Adapt `handler(dbapi_connection)` to the SQLAlchemy pool event signature.
    """
    if sa_event == 'checkout':
        def listener(dbapi_connection, connection_record, connection_proxy):
            handler(dbapi_connection)
    else:
        def listener(dbapi_connection, connection_record):
            handler(dbapi_connection)
    return listener


class DriverConnection:
    """A connection checked out of a `CallbackPool`

    Wraps a SQLAlchemy connection. Outside an explicit transaction every
    query is committed as soon as it completes. Work on one connection is
    serialised with a lock since it runs on the pool's worker threads.
    """

    def __init__(self, pool: 'CallbackPool', sa_connection: sa.Connection) -> None:
        self.pool = pool
        self.sa_connection = sa_connection
        self.in_transaction = False
        self.released = False
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        state = 'released' if self.released else 'open'
        return f'<DriverConnection {self.pool.options.drivername} {state}>'

    def _submit(self, callback: Callable[..., None], func: Callable[..., Any],
                *args: Any) -> None:
        def locked():
            with self._lock:
                return func(*args)
        self.pool._submit(callback, locked)

    def query(self, sql: str, *args: Any) -> None:
        """query(sql, [params], callback)
        """
        params, callback = _split_query_args(args)
        self._submit(callback, self._query, sql, params)

    def _query(self, sql: str, params: Any) -> list[dict[str, Any]] | int:
        result = _execute(self.sa_connection, sql, params)
        if not self.in_transaction:
            self.sa_connection.commit()
        return result

    def begin_transaction(self, callback: Callable[..., None]) -> None:
        self._submit(callback, self._begin)

    def _begin(self) -> None:
        if self.sa_connection.in_transaction():
            self.sa_connection.commit()
        self.sa_connection.begin()
        self.in_transaction = True

    def commit(self, callback: Callable[..., None]) -> None:
        self._submit(callback, self._commit)

    def _commit(self) -> None:
        self.sa_connection.commit()
        self.in_transaction = False

    def rollback(self, callback: Callable[..., None]) -> None:
        self._submit(callback, self._rollback)

    def _rollback(self) -> None:
        self.sa_connection.rollback()
        self.in_transaction = False

    def release(self) -> None:
        """Return the connection to the pool; pending work is rolled back.
        """
        with self._lock:
            if self.released:
                return
            self.released = True
            self.in_transaction = False
            self.sa_connection.close()
        logger.debug('Connection released to pool')

    def destroy(self) -> None:
        """Close the underlying DBAPI connection instead of returning it to the pool.
        """
        with self._lock:
            if self.released:
                return
            self.released = True
            self.in_transaction = False
            self.sa_connection.invalidate()
            self.sa_connection.close()
        logger.debug('Connection destroyed')

    def escape(self, value: Any) -> str:
        return self.pool.escape(value)

    def escape_id(self, value: str) -> str:
        return self.pool.escape_id(value)

    def on(self, event: str, handler: Callable[..., Any]) -> 'DriverConnection':
        """Only ``error`` is supported on a connection; it is shared with the pool.
        """
        if event != 'error':
            raise ValueError(f'Unsupported connection event: {event}')
        self.pool.on(event, handler)
        return self


class CallbackPool:
    """Callback-style pool of SQLAlchemy connections

    Events (`on`):
    - connection: a new DBAPI connection was opened
    - acquire: a connection was checked out
    - release: a connection was returned to the pool
    - error: an error was reported to a callback

    Handlers receive the DBAPI connection, or the error for ``error``.
    """

    def __init__(self, options: PoolOptions,
                 engine_factory: Callable[..., Engine] = sa.create_engine) -> None:
        self.options = options
        self.engine = create_engine_for_options(options, engine_factory)
        self._executor = ThreadPoolExecutor(max_workers=options.max_workers,
                                            thread_name_prefix='aiodbpool')
        self._error_handlers: list[Callable[..., Any]] = []
        self._lock = threading.RLock()
        self.closed = False

    def __repr__(self) -> str:
        state = 'closed' if self.closed else 'open'
        return f'<CallbackPool {self.options.drivername} {state}>'

    @property
    def dialect(self) -> str:
        """Return the dialect name ('postgresql' or 'sqlite')."""
        return self.engine.dialect.name

    def _submit(self, callback: Callable[..., None], func: Callable[..., Any],
                *args: Any) -> None:
        with self._lock:
            if self.closed:
                self._fail(callback, PoolClosedError('Pool is closed'))
                return
            self._executor.submit(self._run, callback, func, *args)

    def _run(self, callback: Callable[..., None], func: Callable[..., Any],
             *args: Any) -> None:
        try:
            result = func(*args)
        except Exception as exc:
            logger.debug(f'Pool operation failed: {exc}')
            self._fail(callback, exc)
            return
        callback(None, result)

    def _fail(self, callback: Callable[..., None], error: Exception) -> None:
        self._emit_error(error)
        callback(error, None)

    def _emit_error(self, error: Exception) -> None:
        for handler in list(self._error_handlers):
            try:
                handler(error)
            except Exception as e:
                logger.warning(f'Error handler {handler!r} raised: {e}')

    def get_connection(self, callback: Callable[..., None]) -> None:
        self._submit(callback, self._checkout)

    def _checkout(self) -> DriverConnection:
        return DriverConnection(self, self.engine.connect())

    def release_connection(self, connection: DriverConnection) -> None:
        connection.release()

    def query(self, sql: str, *args: Any) -> None:
        """query(sql, [params], callback)

        Runs on a connection checked out for the duration of the query.
        """
        params, callback = _split_query_args(args)
        self._submit(callback, self._query, sql, params)

    def _query(self, sql: str, params: Any) -> list[dict[str, Any]] | int:
        with self.engine.connect() as sa_connection:
            result = _execute(sa_connection, sql, params)
            sa_connection.commit()
            return result

    def end(self, callback: Callable[..., None]) -> None:
        """Dispose the engine once queued work has finished.

        Calls made after `end` report `PoolClosedError`.
        """
        with self._lock:
            if self.closed:
                self._fail(callback, PoolClosedError('Pool is already closed'))
                return
            self.closed = True
        threading.Thread(target=self._shutdown, args=(callback,),
                         name='aiodbpool-end', daemon=True).start()

    def _shutdown(self, callback: Callable[..., None]) -> None:
        self._executor.shutdown(wait=True)
        self._run(callback, self._dispose)

    def _dispose(self) -> None:
        self.engine.dispose()
        logger.debug(f'Pool for {self.options.drivername} disposed')

    def escape(self, value: Any) -> str:
        return escape_literal(value, self.engine.dialect)

    def escape_id(self, value: str) -> str:
        return escape_identifier(value, self.dialect)

    def on(self, event: str, handler: Callable[..., Any]) -> 'CallbackPool':
        if event == 'error':
            self._error_handlers.append(handler)
        elif event in POOL_EVENTS:
            sa_event = POOL_EVENTS[event]
            listen(self.engine, sa_event, _pool_listener(sa_event, handler))
        else:
            raise ValueError(f'Unsupported pool event: {event}')
        return self


def create_pool(config: Mapping[str, Any] | PoolOptions) -> CallbackPool:
    """Create a callback-style pool from a mapping of `PoolOptions` fields.
    """
    options = PoolOptions.from_config(config)
    pool = CallbackPool(options)
    logger.debug(f'Created {options.drivername} pool '
                 f'(max connections: {options.pool_max_connections})')
    return pool
