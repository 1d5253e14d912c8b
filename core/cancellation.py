import threading

from core.errors import TurnCancelledError


class CancellationToken:
    """Stop signal passed alongside a chunk sink.

    The caller owns it and calls `cancel()`; handlers poll it between chunks.
    """

    def __init__(self):
        self._event = threading.Event()
        self.reason = "Stopped by user"

    def cancel(self, reason: str = "Stopped by user") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise TurnCancelledError(self.reason)
