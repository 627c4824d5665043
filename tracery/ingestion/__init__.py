"""
tracery Ingestion Module
========================

Loaders for environment snapshots.

Supported Sources:
- Snapshot JSON (snake_case or raw platform attribute names)

Design Philosophy:
- Loaders produce typed records with definitions already parsed
- Bad records are skipped and reported, never fatal
"""

from .snapshot_loader import SnapshotLoader, Snapshot
