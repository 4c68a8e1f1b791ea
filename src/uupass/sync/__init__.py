"""
Mirror sync -- keep a path-named copy of the store in step with it.

The UUID-named master store is what uupass edits; the slave under
``.sync/`` is what a plain pass client (a phone, another machine) sees.
Both are git repos. Every change on one side is replayed on the other.
"""

from .engine import SyncEngine
from .setup import initialize_sync

__all__ = ["SyncEngine", "initialize_sync"]
