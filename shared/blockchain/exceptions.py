"""Ledger adapter exceptions."""


class LedgerError(Exception):
    """Base for all ledger adapter errors."""

    code = "ledger_error"

    def __init__(self, message: str, tx_hash: str | None = None) -> None:
        self.message = message
        self.tx_hash = tx_hash
        super().__init__(message)


class LedgerUnavailableError(LedgerError):
    """Network, timeout or RPC transport failure. The ledger state is unknown."""

    code = "ledger_unavailable"


class LedgerRejectedError(LedgerError):
    """The ledger refused the transaction or call (revert, gas, invalid input)."""

    code = "ledger_rejected"

    def __init__(
        self,
        message: str,
        tx_hash: str | None = None,
        kind: str = "revert",
    ) -> None:
        self.kind = kind
        super().__init__(message, tx_hash=tx_hash)


class EventDecodeError(LedgerError):
    """An event record does not decode against the contract ABI."""

    code = "event_decode_error"
