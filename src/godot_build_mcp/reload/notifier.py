"""Best-effort notification of a running game that scripts changed."""

from __future__ import annotations

import asyncio
import logging

from ..dap import Commands, DAPRequest

logger = logging.getLogger(__name__)


class RunningGameNotifier:
    """Sends `reloadScripts` to an attached game over its debug channel.

    Nothing attached, or a broken connection, is not an error: the request
    is simply not delivered.
    """

    def __init__(self) -> None:
        self._writer: asyncio.StreamWriter | None = None
        self._seq = 0
        self.sent_count = 0

    @property
    def is_attached(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()

    def attach(self, writer: asyncio.StreamWriter) -> None:
        """Use an already open connection to the game."""
        self._writer = writer

    async def connect(self, host: str, port: int, timeout: float = 5.0) -> None:
        """Open a connection to the game's debug channel.

        Raises:
            OSError: If the connection fails
            asyncio.TimeoutError: If connecting takes longer than timeout
        """
        await self.close()
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port), timeout=timeout
        )
        logger.info(f"Attached to running game at {host}:{port}")
        self.attach(writer)

    def detach(self) -> None:
        """Forget the connection without closing it."""
        self._writer = None

    async def close(self) -> None:
        """Close and forget the connection."""
        writer, self._writer = self._writer, None
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug(f"Error closing game connection: {e}")

    def notify_scripts_changed(self) -> None:
        if not self.is_attached:
            logger.debug("No running game attached, skipping script reload notification")
            return

        self._seq += 1
        request = DAPRequest(seq=self._seq, command=Commands.RELOAD_SCRIPTS)
        try:
            self._writer.write(request.to_bytes())
        except (OSError, RuntimeError) as e:
            logger.debug(f"Failed to notify running game: {e}")
            self._writer = None
            return
        self.sent_count += 1
        logger.info("Asked running game to reload scripts")
