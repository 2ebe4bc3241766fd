"""
Access to the transaction persistence backend.

This package contains:
- client: REST client for ledger and subject listing endpoints
"""
