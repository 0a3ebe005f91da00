"""
Pipeline Module

The conversation loop and the data workspace around it.
"""

from duckquery.pipeline.discovery import DataDiscovery, categorical_columns
from duckquery.pipeline.session import ChatSession, SessionStateError, result_summary
from duckquery.pipeline.workspace import DataWorkspace

__all__ = [
    "ChatSession",
    "DataDiscovery",
    "DataWorkspace",
    "SessionStateError",
    "categorical_columns",
    "result_summary",
]
