"""Catalog autofill gateway: product photo in, catalog attributes out."""

__version__ = "0.1.0"
