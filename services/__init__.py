"""
Digital Warranty Services
=========================

Services:
- warranty: warranty issuance, lookup and validation
"""

__all__ = [
    "warranty",
]
