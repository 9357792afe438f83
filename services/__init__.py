"""
Service layer for business logic.

This package contains the services behind the dashboard: receipt
listing (fetch, name join, filtering, stats) and account lookups
(balance, greeting name).
"""
