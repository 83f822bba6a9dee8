"""Per-service shared state."""

import sys

from fetchwrap._internal.http import Exchange
from fetchwrap._internal.interceptors import InterceptorRegistry
from fetchwrap._internal.pending import PendingRequestRegistry
from fetchwrap.models.config import GlobalConfig


class ServiceContext:
    """State owned by one service instance and shared by all its calls.

    Holds the pending-request registry, the interceptor lists and the
    exchange primitive; there is no module-level equivalent.
    """

    def __init__(self, config: GlobalConfig, exchange: Exchange) -> None:
        self.config = config
        self.exchange = exchange
        self.pending = PendingRequestRegistry()
        self.interceptors = InterceptorRegistry(log_debug=self.log_debug)

    @property
    def debug(self) -> bool:
        return self.config.debug

    def log_debug(self, message: str) -> None:
        """Log a debug message to stderr if debug mode is enabled."""
        if self.debug:
            print(f"[fetchwrap] {message}", file=sys.stderr)
