"""
SuiteStore - storage service for test suite documents grouped by project.

Architecture:
    ┌─────────────┐     ┌─────────────┐     ┌─────────────────────┐
    │   Client    │────▶│  HTTP API   │────▶│ SuiteStore protocol │
    └─────────────┘     └─────────────┘     └──────────┬──────────┘
                                                       │
                             ┌─────────────────────────┼──────────────────┐
                             ▼                         ▼                  ▼
                        ┌─────────┐              ┌──────────┐        ┌─────────┐
                        │ CouchDB │              │Filesystem│        │ Memory  │
                        └─────────┘              └──────────┘        └─────────┘

Invariants:
    - The server never starts with a partially initialized store
    - Documents are tagged with their project by the store, not the caller
    - Overwrites on CouchDB are revision-checked; conflicts go to the caller

Version: see _version.py.
"""

from ._version import __version__

__all__ = ["__version__"]
