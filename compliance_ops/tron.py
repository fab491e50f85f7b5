"""TRON wallet activity feed backed by the portal's events endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .explorer.dispatcher import RateGovernedDispatcher
from .explorer.models import TronEventRecord
from .logging_utils import log_operation

Direction = Literal["IN", "OUT", "MOVE"]


@dataclass(frozen=True)
class TronEvent:
    tx_hash: str
    direction: Direction
    amount: float
    ts: int
    link: str
    token: str | None = None
    from_address: str | None = None
    to_address: str | None = None

    @classmethod
    def from_record(cls, record: TronEventRecord) -> TronEvent:
        return cls(**record.model_dump())


class TronEventsClient:
    """Fetches TRON events through its own dispatcher."""

    def __init__(self, dispatcher: RateGovernedDispatcher):
        self.dispatcher = dispatcher

    @log_operation("tron.fetch_events")
    async def fetch_events(
        self,
        address: str,
        since: int | None = None,
        limit: int | None = None,
    ) -> list[TronEvent]:
        """Events for ``address`` in ascending time order."""
        params = {"address": address}
        if since:
            params["since"] = str(since)
        if limit:
            params["limit"] = str(limit)
        records = await self.dispatcher.enqueue(params)
        return [TronEvent.from_record(record) for record in records]


class TronFeed:
    """
    Incremental newest-first feed for one address.

    The first poll asks for ``initial_limit`` events; later polls only ask
    for events after the newest timestamp seen so far.
    """

    def __init__(
        self,
        client: TronEventsClient,
        address: str,
        initial_limit: int = 40,
        max_events: int = 200,
    ):
        self.client = client
        self.initial_limit = initial_limit
        self.max_events = max_events
        self.reset(address)

    def reset(self, address: str) -> None:
        self.address = address
        self.events: list[TronEvent] = []
        self.since = 0

    async def poll(self) -> list[TronEvent]:
        """Fetch new events, returning only the ones added by this poll."""
        if self.since:
            fresh = await self.client.fetch_events(self.address, since=self.since)
        else:
            fresh = await self.client.fetch_events(
                self.address, limit=self.initial_limit
            )
        if not fresh:
            return []

        newest_first = list(reversed(fresh))
        self.events = (newest_first + self.events)[: self.max_events]
        self.since = max(self.since, *(event.ts for event in fresh))
        return newest_first
