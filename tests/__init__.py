"""
SuiteStore Test Suite.

This package contains:
- unit/: Unit tests (no external dependencies)
- integration/: Backend and HTTP tests against in-process fakes
"""
