"""Fabrika: resumable multi-step document generation workflow."""

__version__ = "0.4.0"
