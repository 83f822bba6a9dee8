"""Registry of in-flight requests keyed by dedup signature."""

from fetchwrap._internal.abort import AbortReason, AbortToken


class PendingRequestRegistry:
    """Map from request signature to the token of the live exchange.

    Holds at most one entry per signature. All operations are synchronous,
    so a claim cancels and evicts the previous owner before the new owner
    can be scheduled again.
    """

    def __init__(self) -> None:
        self._pending: dict[str, AbortToken] = {}

    def claim(self, signature: str, token: AbortToken) -> AbortToken | None:
        """Register `token` for `signature`, superseding any current owner.

        Returns:
            The superseded token, or None if the slot was free.
        """
        previous = self._pending.pop(signature, None)
        if previous is not None and previous is not token:
            previous.abort(AbortReason.SUPERSEDED)
        self._pending[signature] = token
        return previous if previous is not token else None

    def rebind(self, signature: str, old: AbortToken, new: AbortToken) -> bool:
        """Swap the owner's token after rotation, if it still owns the slot."""
        if self._pending.get(signature) is not old:
            return False
        self._pending[signature] = new
        return True

    def release(self, signature: str, token: AbortToken) -> bool:
        """Remove the entry if it belongs to `token`."""
        if self._pending.get(signature) is not token:
            return False
        del self._pending[signature]
        return True

    def get(self, signature: str) -> AbortToken | None:
        return self._pending.get(signature)

    def __contains__(self, signature: object) -> bool:
        return signature in self._pending

    def __len__(self) -> int:
        return len(self._pending)
