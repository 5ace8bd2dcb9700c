"""
File storage backends.
"""

from src.kernel.storage.local_storage import LocalFileStorage

__all__ = ["LocalFileStorage"]
