"""
Event Codec
===========

ABI encoding and decoding of contract event logs with eth-abi.

Indexed parameters travel in topics[1:], the rest in the data payload.
Dynamic indexed parameters (string, bytes, arrays) are stored on the ledger
as their keccak hash and are returned as that hash.

Version: 0.1.0
"""

from typing import Any

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError
from web3 import Web3

from shared.blockchain.abi import event_abi, event_topic
from shared.blockchain.client import DecodedEvent, EventRecord
from shared.blockchain.exceptions import EventDecodeError


_DYNAMIC_TYPES = ("string", "bytes")


def _is_dynamic(abi_type: str) -> bool:
    return abi_type in _DYNAMIC_TYPES or abi_type.endswith("]")


def _encode_topic(abi_type: str, value: Any) -> str:
    if _is_dynamic(abi_type):
        raw = value.encode() if isinstance(value, str) else bytes(value)
        return Web3.to_hex(Web3.keccak(raw))
    return Web3.to_hex(encode([abi_type], [value]))


def encode_event(
    entry: dict[str, Any],
    args: dict[str, Any],
    *,
    log_index: int = 0,
    block_number: int | None = None,
    transaction_hash: str | None = None,
    address: str | None = None,
) -> EventRecord:
    """
    Encode event arguments into a raw event record.

    Args:
        entry: ABI event entry
        args: Argument values by name
        log_index: Emission order within the block
        block_number: Inclusion block
        transaction_hash: Emitting transaction
        address: Emitting contract

    Returns:
        EventRecord as a node would return it
    """
    indexed = [i for i in entry["inputs"] if i.get("indexed")]
    plain = [i for i in entry["inputs"] if not i.get("indexed")]

    topics = [event_topic(entry)]
    topics.extend(_encode_topic(i["type"], args[i["name"]]) for i in indexed)
    data = encode([i["type"] for i in plain], [args[i["name"]] for i in plain])

    return EventRecord(
        topics=topics,
        data=Web3.to_hex(data),
        log_index=log_index,
        block_number=block_number,
        transaction_hash=transaction_hash,
        address=address,
    )


def _select_entry(
    abi: list[dict[str, Any]],
    record: EventRecord,
    expected: str | None,
) -> dict[str, Any]:
    if expected is not None:
        try:
            return event_abi(abi, expected)
        except KeyError as e:
            raise EventDecodeError(f"Event not in ABI: {expected}") from e

    topic = record.signature_topic
    if topic is None:
        raise EventDecodeError("Anonymous event record has no signature topic")

    for entry in abi:
        if entry.get("type") == "event" and event_topic(entry) == topic.lower():
            return entry
    raise EventDecodeError(f"No ABI event matches topic {topic}")


def decode_event_record(
    abi: list[dict[str, Any]],
    record: EventRecord,
    expected: str | None = None,
) -> DecodedEvent:
    """
    Decode a raw event record.

    Args:
        abi: Contract ABI
        record: Raw event record
        expected: Decode against this event regardless of the signature topic

    Returns:
        DecodedEvent with named arguments

    Raises:
        EventDecodeError: If the record does not fit the selected schema
    """
    entry = _select_entry(abi, record, expected)
    indexed = [i for i in entry["inputs"] if i.get("indexed")]
    plain = [i for i in entry["inputs"] if not i.get("indexed")]

    if len(record.topics) - 1 != len(indexed):
        raise EventDecodeError(
            f"{entry['name']} expects {len(indexed)} indexed topics, "
            f"got {len(record.topics) - 1}"
        )

    args: dict[str, Any] = {}
    try:
        for param, topic in zip(indexed, record.topics[1:]):
            if _is_dynamic(param["type"]):
                args[param["name"]] = topic
            else:
                (args[param["name"]],) = decode(
                    [param["type"]], Web3.to_bytes(hexstr=topic)
                )

        values = decode([i["type"] for i in plain], Web3.to_bytes(hexstr=record.data))
    except (DecodingError, EncodingError, ValueError, TypeError) as e:
        raise EventDecodeError(f"Cannot decode {entry['name']}: {e}") from e

    args.update({param["name"]: value for param, value in zip(plain, values)})

    return DecodedEvent(
        name=entry["name"],
        args=args,
        log_index=record.log_index,
        block_number=record.block_number,
        transaction_hash=record.transaction_hash,
    )
