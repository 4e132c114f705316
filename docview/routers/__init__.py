# File: /docview/routers/__init__.py | Version: 2.0 | Title: Router package exports
"""
Router package exports.

Keeping these explicit helps static analyzers and avoids surprises
when importing submodules like: `from docview.routers import views`.
"""
from . import health, modules, properties, records, views

__all__ = ["health", "modules", "properties", "records", "views"]
