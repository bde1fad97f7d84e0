import asyncio
from dataclasses import dataclass
from typing import Awaitable, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class Settled(Generic[T]):
    """Outcome of one awaitable run under all-settle semantics."""

    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def settle_all(awaitables: Dict[str, Awaitable[T]]) -> Dict[str, Settled[T]]:
    """Await every named awaitable concurrently without failing fast.

    A failure in one awaitable never cancels the others; each outcome is
    reported under its key. Cancellation of the caller still propagates.
    """
    keys = list(awaitables)
    outcomes = await asyncio.gather(*awaitables.values(), return_exceptions=True)

    settled: Dict[str, Settled[T]] = {}
    for key, outcome in zip(keys, outcomes):
        if isinstance(outcome, asyncio.CancelledError):
            raise outcome
        if isinstance(outcome, BaseException):
            settled[key] = Settled(error=outcome)
        else:
            settled[key] = Settled(value=outcome)
    return settled
