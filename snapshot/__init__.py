"""
Snapshot generation engine: Airtable base → self-contained SQLite file.

Modules:
    naming: Identifier sanitizing and de-duplication
    type_mapping: Airtable field type → SQLite column type and value encoding
    planner: Builds the immutable SchemaPlan from a base schema
    throttle: Minimum spacing between API requests
    client: Airtable REST client with retry logic
    fetcher: Cursor-paginated record retrieval per table
    writer: Table creation and batched, transactional inserts
    runner: Orchestrates the pipeline and aggregates outcomes

Architecture:
    1. Fetch the base schema
    2. Plan tables, columns and junction tables (fully, before any write)
    3. Create metadata, data and junction tables
    4. For each table: fetch all pages, then write rows and link rows
    
    Steps run strictly one after another; one throttle spaces every request.

Usage:
    from snapshot.client import AirtableClient
    from snapshot.runner import SnapshotRunner

Example:
    async with AirtableClient(api_key) as client:
        result = await SnapshotRunner(client).run("appXXXXXXXXXXXXXX")
    
    print(f"Wrote {result.rows_written} rows to {result.file_path}")
    result.discard()

Error Handling:
    Fatal errors (schema, plan, structure) raise exceptions from
    core.exceptions and leave no file behind. Table fetch failures and row
    failures are counted on the SnapshotResult.
"""

__all__ = [
    "AirtableClient",
    "RequestThrottle",
    "SchemaPlanner",
    "PaginatedFetcher",
    "SnapshotWriter",
    "SnapshotRunner",
]
