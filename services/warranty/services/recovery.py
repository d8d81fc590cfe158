"""
Token ID Recovery
=================

Recovers the ledger-assigned token id of an issuance from its outcome.

Strategies, tried in order until one yields an id:
1. topic_match    - receipt events whose signature topic is WarrantyIssued
2. blind_decode   - every receipt event decoded as WarrantyIssued, topic ignored
3. block_requery  - WarrantyIssued events replayed for the inclusion block

When all fail the result is UNRESOLVED. No placeholder id is ever returned.

Version: 0.1.0
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from shared.blockchain import (
    WARRANTY_ISSUED,
    EventDecodeError,
    IssuanceOutcome,
    LedgerClient,
    LedgerError,
)
from shared.config import settings
from shared.logging import get_logger
from services.warranty.models.events import WarrantyIssuedEvent


logger = get_logger(__name__)


Strategy = Callable[[IssuanceOutcome], Awaitable[int | None]]


class RecoveryState(str, Enum):
    """Progress of a recovery attempt."""

    NOT_ATTEMPTED = "not_attempted"
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class TokenIdResolution:
    """Outcome of token id recovery."""

    state: RecoveryState = RecoveryState.NOT_ATTEMPTED
    token_id: int | None = None
    strategy: str | None = None

    @property
    def resolved(self) -> bool:
        return self.state == RecoveryState.RESOLVED


class TokenIdRecovery:
    """
    Cascading token id recovery.

    Never raises for an unresolved id; ledger failures inside a strategy
    count as "no result" for that strategy.
    """

    def __init__(self, ledger: LedgerClient, timeout: float | None = None) -> None:
        """
        Initialize recovery.

        Args:
            ledger: Ledger client used for decoding and re-queries
            timeout: Bound for the block re-query, in seconds
        """
        self.ledger = ledger
        self.timeout = timeout or settings.blockchain.timeout_seconds
        self.strategies: list[tuple[str, Strategy]] = [
            ("topic_match", self._topic_match),
            ("blind_decode", self._blind_decode),
            ("block_requery", self._block_requery),
        ]

    async def recover(self, outcome: IssuanceOutcome) -> TokenIdResolution:
        """
        Recover the token id of a successful issuance.

        Args:
            outcome: Issuance outcome from the ledger client

        Returns:
            TokenIdResolution; NOT_ATTEMPTED for failed outcomes
        """
        if not outcome.success:
            return TokenIdResolution()

        for name, strategy in self.strategies:
            token_id = await strategy(outcome)
            if token_id is not None:
                logger.info(
                    "token_id_recovered",
                    token_id=token_id,
                    strategy=name,
                    tx_hash=outcome.transaction_hash,
                )
                return TokenIdResolution(RecoveryState.RESOLVED, token_id, name)

        logger.warning(
            "token_id_unresolved",
            tx_hash=outcome.transaction_hash,
            block_number=outcome.block_number,
            events=len(outcome.events),
        )
        return TokenIdResolution(RecoveryState.UNRESOLVED)

    async def _topic_match(self, outcome: IssuanceOutcome) -> int | None:
        topic = self.ledger.event_topic(WARRANTY_ISSUED)

        for record in outcome.events:
            if (record.signature_topic or "").lower() != topic:
                continue
            try:
                event = WarrantyIssuedEvent.from_decoded(self.ledger.decode_event(record))
            except EventDecodeError as e:
                logger.debug("topic_match_decode_failed", log_index=record.log_index, error=e.message)
                continue
            return event.token_id

        return None

    async def _blind_decode(self, outcome: IssuanceOutcome) -> int | None:
        for record in outcome.events:
            try:
                decoded = self.ledger.decode_event(record, expected=WARRANTY_ISSUED)
                event = WarrantyIssuedEvent.from_decoded(decoded)
            except EventDecodeError:
                continue
            return event.token_id

        return None

    async def _block_requery(self, outcome: IssuanceOutcome) -> int | None:
        block = outcome.block_number
        if block is None:
            return None

        try:
            records = await asyncio.wait_for(
                self.ledger.query_events(WARRANTY_ISSUED, block, block),
                timeout=self.timeout,
            )
        except (LedgerError, asyncio.TimeoutError) as e:
            logger.warning("block_requery_failed", block_number=block, error=str(e))
            return None

        events: list[WarrantyIssuedEvent] = []
        for record in records:
            try:
                events.append(WarrantyIssuedEvent.from_decoded(self.ledger.decode_event(record)))
            except EventDecodeError:
                continue

        # Events of other transactions in the same block belong to other issuances
        tx_hash = (outcome.transaction_hash or "").lower()
        if tx_hash:
            events = [
                e for e in events
                if e.transaction_hash is None or e.transaction_hash.lower() == tx_hash
            ]

        if not events:
            return None
        return max(events, key=lambda e: e.log_index).token_id
