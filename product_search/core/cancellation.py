"""Cancellation handles for in-flight search requests."""

import asyncio
from dataclasses import dataclass, field

from product_search.core.exceptions import RequestCancelled


class CancellationToken:
    """Flag shared between a dispatch and the fetches it starts.

    Fetches check the token when they resume, so a superseded request stops
    before it can touch the cache or the view.
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RequestCancelled()


@dataclass
class InFlightRequest:
    """The single outstanding search fetch and the task that owns it."""

    query: str
    token: CancellationToken = field(default_factory=CancellationToken)
    task: asyncio.Task[None] | None = None

    def cancel(self) -> None:
        """Signal the token and interrupt the owning task at its next await."""
        self.token.cancel()
        task = self.task
        if task is not None and not task.done():
            task.cancel()
