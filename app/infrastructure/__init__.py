"""
Infrastructure layer - flight booking lifecycle.

Concrete adapters for the application ports.

Layout:
- db/: SQLAlchemy Core tables, mappers, repositories, transaction manager
- gateways/: HTTP adapter for the remote flight provider
- in_memory/: in-memory adapters for development and tests
- notifications/: notifier adapters (logging, webhook)
- circuit_breaker.py: pybreaker configuration for the provider
"""
