"""
Data Module

Reading and unioning of the raw train/test sources.
"""

from loan_default.data.loader import (
    read_table,
    union_sources,
    split_by_origin,
    load_sources,
)

__all__ = [
    "read_table",
    "union_sources",
    "split_by_origin",
    "load_sources",
]
