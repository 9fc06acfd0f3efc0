import functools
import logging

from pyfleetapi.exceptions import UnsupportedError

log = logging.getLogger('pyfleetapi.powerwall')
WARNED_ONCE = {}


def unsupported(reason: str):
    """
    Mark a Powerwall operation as having no Fleet API equivalent.

    The wrapped function is never called. Each call raises
    UnsupportedError(operation, reason) without touching the network.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            if not WARNED_ONCE.get(func.__name__):
                log.warning(f"This API [{func.__name__}] is not available in fleetapi mode. This message will be "
                            "printed only once at the warning level.")
                WARNED_ONCE[func.__name__] = 1
            else:
                log.debug(f"This API [{func.__name__}] is not available in fleetapi mode.")
            raise UnsupportedError(func.__name__, reason)

        wrapper.unsupported_reason = reason
        return wrapper

    return decorator
