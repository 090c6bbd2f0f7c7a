"""Database store layer - provides persistence for the application.

This module re-exports all public database functions for easy importing.
"""

from splitledger.store.queries import (
    get_split_ledger,
    get_user_split_ids,
    insert_split,
    split_transaction,
    write_settlement,
    write_split,
)
from splitledger.store.schema import database_exists, get_db_path, init_database

__all__ = [
    # Schema
    "database_exists",
    "get_db_path",
    "init_database",
    # Queries
    "get_split_ledger",
    "get_user_split_ids",
    "insert_split",
    "split_transaction",
    "write_settlement",
    "write_split",
]
