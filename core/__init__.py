"""
Core ledger reconciliation modules.

This package contains:
- aggregate: Per-subject totals and status conventions
- classify: Debit/credit side assignment and the cash-purchase rule
- config: Application configuration and settings
- exceptions: Custom exception classes
- exporters: Workbook and CSV export rendering
- formatting: en-IN currency and date formatting
- logger: Logging configuration
- normalize: Raw ledger row normalization
- schema: Pydantic models for ledger data
"""
