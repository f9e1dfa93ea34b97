"""
Bitrix Cache - Storage Engines

Exports available engine implementations.

Redis engine is lazy-loaded via factory.py to avoid import overhead.
"""

from .files import FilesCacheEngine
from .memory import MemoryCacheEngine

__all__ = [
    "FilesCacheEngine",
    "MemoryCacheEngine",
]
