"""
Core utilities and configuration for the Airtable snapshot service.

This package provides foundational components used throughout the engine:

Modules:
    config: Application configuration and environment variable management
    database: Async SQLite engine factory for snapshot files
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import create_snapshot_engine
    from core.exceptions import SourceAPIError, PlanError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()
    
    # Open a snapshot file
    engine = create_snapshot_engine("/tmp/base.sqlite")
    async with engine.begin() as conn:
        # Perform database operations
        pass
"""

__all__ = [
    "settings",
    "create_snapshot_engine",
    "setup_logging",
    # Exceptions
    "SnapshotException",
    "ConfigurationError",
    "SourceAPIError",
    "SchemaFetchError",
    "PlanError",
    "StructureError",
    "WriteError",
    "RetryableError",
    "NonRetryableError",
    "NetworkError",
    "RateLimitError",
    "AuthenticationError",
    "ResourceNotFoundError",
]
