"""
SSE Signals
===========

One-shot abort notification raised by the request lifecycle when the
remote peer goes away.
"""

from typing import Any, Awaitable, Callable, List, Optional, Union
import inspect

from essence_sse.config.logging import get_logger

logger = get_logger(__name__)

AbortListener = Callable[[str], Union[None, Awaitable[None]]]


class AbortSignal:
    """Cancellation signal with a single registration point."""

    def __init__(self) -> None:
        self._listeners: List[AbortListener] = []
        self._aborted = False
        self._reason: Optional[str] = None
        self.logger: Any = logger.bind(component="abort_signal")

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def add_listener(self, listener: AbortListener) -> None:
        """Register a callable invoked with the abort reason."""
        self._listeners.append(listener)

    async def abort(self, reason: str = "aborted") -> None:
        """
        Fire the signal.

        Each listener runs once; later calls are no-ops. A failing listener
        is logged and does not prevent the remaining listeners from running.
        """
        if self._aborted:
            return

        self._aborted = True
        self._reason = reason
        self.logger.info("Abort signal fired", reason=reason, listeners=len(self._listeners))

        for listener in self._listeners:
            try:
                result = listener(reason)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.logger.error(
                    "Abort listener failed",
                    reason=reason,
                    error_type=type(e).__name__,
                    error=str(e),
                )
