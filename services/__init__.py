"""
Service layer for business logic.

This package contains service classes that orchestrate the ledger
pipeline: fetching subject ledgers, reconciling totals across vendors
and expense categories, and producing spreadsheet exports.
"""
