# File: /docview/__init__.py | Version: 1.0 | Title: Package metadata
"""Document view engine with a reference FastAPI backing store."""

__version__ = "0.1.0"
