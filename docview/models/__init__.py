# File: /docview/models/__init__.py | Version: 2.0 | Title: Models Package Exports
from .documents import DocumentSchema, SchemaProperty, SchemaRecord, SchemaView

__all__ = ["DocumentSchema", "SchemaProperty", "SchemaView", "SchemaRecord"]
