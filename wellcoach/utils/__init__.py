"""Wellcoach utilities."""

from .yaml_loader import load_yaml_file
from .timestamps import parse_timestamp, format_timestamp, format_duration

__all__ = [
    "load_yaml_file",
    "parse_timestamp",
    "format_timestamp",
    "format_duration",
]
