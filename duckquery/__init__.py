"""
DuckQuery

Ask natural-language questions about DuckDB tables. Questions are grounded in
a snapshot of the loaded schema, turned into SQL by a chat-completion model,
executed on request, explained, and repaired when they fail.
"""

__version__ = "0.1.0"
