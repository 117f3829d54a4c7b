"""
HTTP API layer for SuiteStore.

Thin glue over the SuiteStore protocol: request parsing, id generation
for new suites, and mapping of store errors to HTTP status codes.
"""

from .http_server import create_app, new_test_id

__all__ = ["create_app", "new_test_id"]
