from .base import RequestOptions, Transport
from .http_transport import HttpxTransport

__all__ = ["HttpxTransport", "RequestOptions", "Transport"]
