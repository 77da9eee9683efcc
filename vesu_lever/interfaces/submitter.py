"""Submitter protocol — signing and transaction submission."""
from typing import Protocol

from ..models import CallBatch


class Submitter(Protocol):
    """Signs a call batch as one transaction and awaits finality."""

    @property
    def address(self) -> str: ...

    async def submit(self, batch: CallBatch) -> str: ...
