"""
Bulk Job Client

A command-line client for the platform's asynchronous bulk data exchange
endpoints.

Supports:
- Export jobs from a GraphQL query, with result download
- Import jobs from JSON, CSV or JSON Lines files
- Combined multi-object imports, including re-importing a previous export
- Status polling that tolerates jobs which are not yet queryable
- Per-object result classification with partial success reporting
"""

__version__ = "0.1.0"
