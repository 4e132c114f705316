# File: /docview/services/__init__.py | Version: 1.0 | Title: Client-side services
from .document_view import DocumentViewController
from .module_api import ModuleApiFacade, RecordList

__all__ = ["DocumentViewController", "ModuleApiFacade", "RecordList"]
