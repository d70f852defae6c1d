"""Services package."""

from .async_runner import set_main_loop, run_coroutine_sync, submit_coroutine
from .entry_registry import Entry, EntryRegistry, IdentityMaps, IdentityTarget, Resolution, entries_from_rows
from .events import EventBus, WinnerRemovedEvent
from .rigging import HttpRiggingFallback, RiggingOutcome, RiggingReconciler, SpinConfig
from .spin_resolver import SpinAnimator, SpinRecord, SpinResolver, SpinWinner
from .wheel_service import WheelService, get_wheel_service, init_wheel_service

__all__ = [
    "set_main_loop",
    "run_coroutine_sync",
    "submit_coroutine",
    # Entries
    "Entry",
    "EntryRegistry",
    "IdentityMaps",
    "IdentityTarget",
    "Resolution",
    "entries_from_rows",
    # Events
    "EventBus",
    "WinnerRemovedEvent",
    # Spins
    "HttpRiggingFallback",
    "RiggingOutcome",
    "RiggingReconciler",
    "SpinConfig",
    "SpinAnimator",
    "SpinRecord",
    "SpinResolver",
    "SpinWinner",
    # Orchestration
    "WheelService",
    "get_wheel_service",
    "init_wheel_service",
]
