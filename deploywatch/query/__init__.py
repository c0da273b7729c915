"""Deployments table query handling."""

from .handler import QueryHandler, parse_function_args
from .table import COLUMNS, ColumnSpec, info_response, render

__all__ = [
    "COLUMNS",
    "ColumnSpec",
    "QueryHandler",
    "info_response",
    "parse_function_args",
    "render",
]
