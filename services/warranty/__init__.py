"""
Digital Warranty Service
========================

Issues warranty certificates on a smart-contract ledger and mirrors them
into a local store for fast lookup.

Components:
- Issuance: ledger submission, token id recovery, local persistence
- Validity: ledger answer with local fallback
- Resolution: serial number to token id, with ledger replay
"""
