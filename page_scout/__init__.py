"""
PageScout package initializer.
Defines package version and exposes the engine entry points.
"""
__version__ = "0.1.0"

from page_scout.engine import ScanEngine
from page_scout.extractor import extract
from page_scout.facade import ScanFacade

__all__ = ["__version__", "ScanEngine", "ScanFacade", "extract"]
