from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any, Self

from aiodbpool.exceptions import ConfigurationError

__all__ = [
    'PoolOptions',
    'SUPPORTED_DRIVERS',
]

SUPPORTED_DRIVERS = ('postgresql', 'sqlite')


@dataclass
class PoolOptions:
    """Options for the default driver pool

    supported driver names: `postgresql`, `sqlite`

    Pooling options:
    - pool_max_connections: Connections kept open in the pool (default: 5)
    - pool_max_overflow: Extra connections allowed under load (default: 10)
    - pool_max_idle_time: Seconds before a connection is recycled (default: 300)
    - pool_wait_timeout: Seconds to wait for a free connection (default: 30)
    - max_workers: Worker threads running blocking calls (default: executor default)
    """
    drivername: str = 'postgresql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None
    pool_max_connections: int = 5
    pool_max_overflow: int = 10
    pool_max_idle_time: int = 300
    pool_wait_timeout: int = 30
    max_workers: int | None = None

    def __post_init__(self):
        if self.drivername not in SUPPORTED_DRIVERS:
            raise ConfigurationError(f'drivername must be one of: {SUPPORTED_DRIVERS}')
        if self.drivername == 'postgresql' and not (self.hostname and self.database):
            raise ConfigurationError('postgresql requires hostname and database')
        if self.drivername == 'sqlite' and not self.database:
            raise ConfigurationError('sqlite requires database')
        if self.pool_max_connections < 1:
            raise ConfigurationError('pool_max_connections must be at least 1')
        if self.max_workers is not None and self.max_workers < 1:
            raise ConfigurationError('max_workers must be at least 1')

    @classmethod
    def from_config(cls, config: 'Mapping[str, Any] | PoolOptions') -> Self:
        """Build options from a mapping, rejecting unknown keys.
        """
        if isinstance(config, cls):
            return config

        names = {field.name for field in fields(cls)}
        unknown = sorted(set(config) - names)
        if unknown:
            raise ConfigurationError(f'Unknown pool options: {unknown}')
        return cls(**config)
