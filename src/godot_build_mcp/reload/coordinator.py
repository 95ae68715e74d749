"""Hot-reload coordination after a successful build.

Sequence on every successful build or rebuild:
1. Tell the running game to reload its scripts (fire-and-forget)
2. Restart the debounce timer
3. Hard-reload host assemblies if the predicate says a reload is needed
"""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class RunningProcessNotifier(Protocol):
    def notify_scripts_changed(self) -> None: ...


class ReloadPredicate(Protocol):
    def is_reload_needed(self) -> bool: ...


class HostReloader(Protocol):
    def reload(self, hard: bool) -> None: ...


class RestartableTimer(Protocol):
    def restart(self) -> None: ...


class HotReloadCoordinator:
    """Runs the post-build notification and reload sequence."""

    def __init__(
        self,
        notifier: RunningProcessNotifier,
        timer: RestartableTimer,
        predicate: ReloadPredicate,
        reloader: HostReloader,
    ):
        self._notifier = notifier
        self._timer = timer
        self._predicate = predicate
        self._reloader = reloader

    def on_build_succeeded(self) -> None:
        """Notify the running game, restart the timer, reload if needed.

        All three steps always run in this order. Only the hard reload is
        used; the soft variant is never chosen here.
        """
        try:
            self._notifier.notify_scripts_changed()
        except Exception:
            logger.exception("Failed to notify running game")

        try:
            self._timer.restart()
        except Exception:
            logger.exception("Failed to restart debounce timer")

        if self._predicate.is_reload_needed():
            logger.info("Assemblies changed, hard-reloading host")
            self._reloader.reload(hard=True)
        else:
            logger.debug("Host assemblies up to date")

    def reload_if_needed(self) -> None:
        """Debounce timer callback: hard-reload if assemblies are still stale."""
        if self._predicate.is_reload_needed():
            logger.info("Debounced reload: assemblies changed")
            self._reloader.reload(hard=True)
