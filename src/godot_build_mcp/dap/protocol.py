"""DAP message framing for talking to a running game's debug channel."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass
class DAPRequest:
    """DAP request message."""
    seq: int
    command: str
    arguments: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "seq": self.seq,
            "type": "request",
            "command": self.command,
        }
        if self.arguments:
            d["arguments"] = self.arguments
        return d

    def to_bytes(self) -> bytes:
        content = json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8")
        header = f"Content-Length: {len(content)}\r\n\r\n".encode("ascii")
        return header + content


# Commands understood by the game's debug channel
class Commands:
    RELOAD_SCRIPTS = "reloadScripts"
