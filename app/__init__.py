"""
HTTP layer.

This package contains:
- api: FastAPI routes for ledger totals, dashboards and exports
"""
