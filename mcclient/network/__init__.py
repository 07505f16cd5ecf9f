"""Network module for mcclient."""

from .connection import Session, connection_id, read_response, send_request

__all__ = ["Session", "connection_id", "read_response", "send_request"]
