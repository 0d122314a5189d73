"""
Storage package - In-memory storage for workflow calls.
"""

from runwatch.storage.memory import (
    RunStorage,
    StoredCall,
    run_storage,
)

__all__ = [
    "RunStorage",
    "StoredCall",
    "run_storage",
]
