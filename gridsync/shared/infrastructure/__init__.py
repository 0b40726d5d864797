"""
Shared Infrastructure Module
============================

Technical adapters for external systems.
"""

# Transport
from gridsync.shared.infrastructure.transport import HttpxTransport, RequestOptions, Transport

__all__ = [
    "HttpxTransport",
    "RequestOptions",
    "Transport",
]
