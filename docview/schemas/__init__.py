# File: /docview/schemas/__init__.py | Version: 2.0 | Title: Schemas package exports
from . import documents, envelope

__all__ = ["documents", "envelope"]
