"""
Ledger Event Schemas
====================

Fixed schemas for contract events consumed by the service. Decoded event
arguments are validated strictly; anything that does not fit is a decode
failure.

Version: 0.1.0
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError

from shared.blockchain import WARRANTY_ISSUED, DecodedEvent, EventDecodeError


class WarrantyIssuedEvent(BaseModel):
    """WarrantyIssued(uint256,address,string,string,uint256,uint256)."""

    model_config = ConfigDict(strict=True, populate_by_name=True, frozen=True)

    token_id: int = Field(alias="tokenId", ge=0)
    customer: str
    product_name: str = Field(alias="productName")
    serial_number: str = Field(alias="serialNumber")
    purchase_date: int = Field(alias="purchaseDate", ge=0)
    expiry_date: int = Field(alias="expiryDate", ge=0)

    # Emission metadata, not part of the event arguments
    log_index: int = 0
    block_number: int | None = None
    transaction_hash: str | None = None

    @classmethod
    def from_decoded(cls, event: DecodedEvent) -> WarrantyIssuedEvent:
        """
        Validate a decoded event against the schema.

        Raises:
            EventDecodeError: Wrong event name or arguments that do not fit
        """
        if event.name != WARRANTY_ISSUED:
            raise EventDecodeError(f"Expected {WARRANTY_ISSUED}, got {event.name}")
        try:
            return cls.model_validate({
                **event.args,
                "log_index": event.log_index,
                "block_number": event.block_number,
                "transaction_hash": event.transaction_hash,
            })
        except SchemaError as e:
            raise EventDecodeError(f"{WARRANTY_ISSUED} arguments do not fit schema: {e}") from e
