"""Hot-reload coordination for the host process and the running game.

Provides:
- Post-build notification and reload sequence
- Single-slot debounce timer for deferred reloads
- Assembly change tracking in the build output directory
- Best-effort script reload notification of a running game
"""

from .assemblies import AssemblyWatcher
from .coordinator import (
    HostReloader,
    HotReloadCoordinator,
    ReloadPredicate,
    RestartableTimer,
    RunningProcessNotifier,
)
from .debounce import DebounceTimer
from .notifier import RunningGameNotifier

__all__ = [
    "AssemblyWatcher",
    "DebounceTimer",
    "HotReloadCoordinator",
    "HostReloader",
    "ReloadPredicate",
    "RestartableTimer",
    "RunningGameNotifier",
    "RunningProcessNotifier",
]
