"""
Stockroom - inventory document store with a supervised worker process.

- stockroom.core: errors, logging, settings, paths, ids
- stockroom.store: atomic JSON document persistence
- stockroom.inventory: stock-out allocation
- stockroom.supervisor: worker process lifetime
- stockroom.ops: dispatch layer used by the front end
"""

__version__ = "0.1.0"
