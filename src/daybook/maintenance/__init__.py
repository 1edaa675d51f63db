"""Maintenance utilities (export)."""

from .export import ExportInfo, export_range, write_export

__all__ = ["ExportInfo", "export_range", "write_export"]
