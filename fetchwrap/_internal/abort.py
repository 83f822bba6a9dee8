"""Cancellation tokens, one per exchange attempt."""

import asyncio
from enum import Enum


class AbortReason(str, Enum):
    """Why a token was triggered."""

    USER = "user"
    TIMEOUT = "timeout"
    SUPERSEDED = "superseded"


class AbortToken:
    """Cooperative cancellation signal for one exchange.

    Triggering is idempotent: the first reason wins and later calls are
    ignored. A token triggered after its exchange settled is inert.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: AbortReason | None = None

    @property
    def aborted(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> AbortReason | None:
        return self._reason

    def abort(self, reason: AbortReason = AbortReason.USER) -> bool:
        """Trigger the token. Returns False if it was already triggered."""
        if self._reason is not None:
            return False
        self._reason = reason
        self._event.set()
        return True

    async def wait(self) -> AbortReason | None:
        """Suspend until the token is triggered."""
        await self._event.wait()
        return self._reason

    def __repr__(self) -> str:
        state = self._reason.value if self._reason else "live"
        return f"<AbortToken {state} at {id(self):#x}>"


class AbortCoordinator:
    """Allocates and tracks the current token of one logical call.

    A call may span several exchanges; a timeout rotates to a fresh token
    while failure retries keep the current one.
    """

    def __init__(self) -> None:
        self._current = AbortToken()
        self._allocated = 1

    @property
    def current(self) -> AbortToken:
        return self._current

    @property
    def allocated(self) -> int:
        """Number of tokens handed out so far."""
        return self._allocated

    def rotate(self) -> tuple[AbortToken, AbortToken]:
        """Abort the current token as timed out and allocate a fresh one.

        Returns:
            The (old, new) token pair.
        """
        old = self._current
        old.abort(AbortReason.TIMEOUT)
        self._current = AbortToken()
        self._allocated += 1
        return old, self._current

    def abort(self, reason: AbortReason = AbortReason.USER) -> bool:
        return self._current.abort(reason)
