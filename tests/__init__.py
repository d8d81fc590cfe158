"""
Digital Warranty Test Suite
===========================

Test organization:
- tests/unit/                 - Ledger codec, mock and web3 client, logging and settings
- tests/services/warranty/    - Orchestrator, recovery, resolution, stores and routes

Run tests:
    pytest                          # All tests
    pytest tests/unit               # Unit tests only
"""
