"""
Core modules for the banking dashboard.

This package contains:
- auth: Identity-provider session verification
- config: Application configuration and settings
- db: MongoDB access layer
- exceptions: Custom exception classes
- exporters: CSV and Excel export
- logger: Logging configuration
- normalize: Amount parsing, credit/debit classification, display formatting
- schema: Pydantic models for data validation
"""
