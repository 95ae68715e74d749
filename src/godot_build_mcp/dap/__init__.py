"""Debug Adapter Protocol framing."""

from .protocol import Commands, DAPRequest

__all__ = ["Commands", "DAPRequest"]
