"""
DigitalWarranty Contract ABI
============================

The subset of the DigitalWarranty (ERC-721) contract interface consumed by
the service, plus helpers for event signatures and topics.

Version: 0.1.0
"""

import json
from pathlib import Path
from typing import Any

from web3 import Web3


WARRANTY_ISSUED = "WarrantyIssued"
TRANSFER = "Transfer"

DIGITAL_WARRANTY_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "issueWarranty",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "customer", "type": "address"},
            {"name": "productName", "type": "string"},
            {"name": "productModel", "type": "string"},
            {"name": "serialNumber", "type": "string"},
            {"name": "warrantyPeriod", "type": "uint256"},
            {"name": "manufacturer", "type": "address"},
            {"name": "retailer", "type": "address"},
            {"name": "tokenURI", "type": "string"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "getWarrantyDetails",
        "stateMutability": "view",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [
            {"name": "productName", "type": "string"},
            {"name": "productModel", "type": "string"},
            {"name": "serialNumber", "type": "string"},
            {"name": "purchaseDate", "type": "uint256"},
            {"name": "expiryDate", "type": "uint256"},
            {"name": "manufacturer", "type": "address"},
            {"name": "retailer", "type": "address"},
            {"name": "isValid", "type": "bool"},
        ],
    },
    {
        "type": "function",
        "name": "isWarrantyValid",
        "stateMutability": "view",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "name": "name",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
    {
        "type": "function",
        "name": "symbol",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
    {
        "type": "event",
        "name": TRANSFER,
        "anonymous": False,
        "inputs": [
            {"name": "from", "type": "address", "indexed": True},
            {"name": "to", "type": "address", "indexed": True},
            {"name": "tokenId", "type": "uint256", "indexed": True},
        ],
    },
    {
        "type": "event",
        "name": WARRANTY_ISSUED,
        "anonymous": False,
        "inputs": [
            {"name": "tokenId", "type": "uint256", "indexed": True},
            {"name": "customer", "type": "address", "indexed": True},
            {"name": "productName", "type": "string", "indexed": False},
            {"name": "serialNumber", "type": "string", "indexed": False},
            {"name": "purchaseDate", "type": "uint256", "indexed": False},
            {"name": "expiryDate", "type": "uint256", "indexed": False},
        ],
    },
]


def load_abi(path: Path | None = None) -> list[dict[str, Any]]:
    """
    Load the contract ABI.

    Args:
        path: Optional compiled artifact (Hardhat/Foundry JSON with an "abi"
            key, or a bare ABI list). Falls back to the built-in ABI.

    Returns:
        ABI entries
    """
    if path is None:
        return DIGITAL_WARRANTY_ABI

    artifact = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(artifact, dict):
        return artifact["abi"]
    return artifact


def event_abi(abi: list[dict[str, Any]], name: str) -> dict[str, Any]:
    """Find an event entry by name."""
    for entry in abi:
        if entry.get("type") == "event" and entry.get("name") == name:
            return entry
    raise KeyError(f"Event not in ABI: {name}")


def event_signature(entry: dict[str, Any]) -> str:
    """Canonical signature, e.g. WarrantyIssued(uint256,address,string,string,uint256,uint256)."""
    types = ",".join(i["type"] for i in entry["inputs"])
    return f"{entry['name']}({types})"


def event_topic(entry: dict[str, Any]) -> str:
    """Keccak-256 signature topic as a 0x-prefixed hex string."""
    return Web3.to_hex(Web3.keccak(text=event_signature(entry)))


WARRANTY_ISSUED_SIGNATURE = event_signature(event_abi(DIGITAL_WARRANTY_ABI, WARRANTY_ISSUED))
