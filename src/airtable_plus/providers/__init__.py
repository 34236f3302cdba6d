"""Record store implementations for external services.

Each provider module exports a `Provider` alias for its store class,
along with its connection and record types.

Available providers:
- airtable: Airtable REST API via pyairtable
"""

from airtable_plus.providers import airtable

__all__ = [
    "airtable",
]
