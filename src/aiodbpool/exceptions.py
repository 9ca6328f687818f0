"""
Pool-specific exception classes.
"""


class PoolError(Exception):
    """Base class for all aiodbpool errors.
    """


class PoolClosedError(PoolError):
    """Operation attempted on a pool that has been ended.
    """


class ConfigurationError(PoolError, ValueError):
    """Invalid or unknown pool option.
    """


class CallbackError(PoolError):
    """Error value passed to a callback that is not an exception instance.

    The original value is kept on the `error` attribute.
    """

    def __init__(self, error):
        super().__init__(error)
        self.error = error

