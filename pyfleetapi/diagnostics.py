import logging

log = logging.getLogger(__name__)


class Diagnostics:
    """
    Diagnostic sink handed to a FleetAPI client at construction.

    trace() receives printf-style debug messages, error() receives extra
    context for failures (such as the raw body of a response that could not
    be decoded). The base class discards both.
    """

    def trace(self, msg: str, *args) -> None:
        pass

    def error(self, msg: str, err: BaseException) -> None:
        pass


class LoggingDiagnostics(Diagnostics):
    """Forward diagnostics to a standard library logger"""

    def __init__(self, logger: logging.Logger = None):
        self.log = logger or log

    def trace(self, msg: str, *args) -> None:
        self.log.debug(msg, *args)

    def error(self, msg: str, err: BaseException) -> None:
        self.log.error("%s: %r", msg, err)
