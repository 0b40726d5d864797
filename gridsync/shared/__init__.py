"""
GridSync Shared Kernel
======================

Infrastructure shared by every table instance.

Architecture:
- core: EventBus, events, configuration, errors, path resolution, logging
- infrastructure: Technical adapters (HTTP transport)
"""

__all__ = []
