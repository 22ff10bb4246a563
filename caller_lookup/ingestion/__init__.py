"""Utilities for importing call logs and contacts and exporting lookup results."""

from .exporters import export_lookup_outcomes, outcomes_to_dataframe, write_call_log
from .loaders import UnsupportedFileTypeError, load_call_log, load_contacts

__all__ = [
    "UnsupportedFileTypeError",
    "export_lookup_outcomes",
    "load_call_log",
    "load_contacts",
    "outcomes_to_dataframe",
    "write_call_log",
]
