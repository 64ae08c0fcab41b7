"""Sync status state machine."""

from __future__ import annotations

from ..exceptions import InvalidStatusTransition
from ..schemas.sync import SyncStatus

ALLOWED_TRANSITIONS: dict[SyncStatus, frozenset[SyncStatus]] = {
    SyncStatus.IDLE: frozenset({SyncStatus.SYNCING}),
    SyncStatus.SYNCING: frozenset({SyncStatus.SUCCESS, SyncStatus.FAILED}),
    SyncStatus.SUCCESS: frozenset({SyncStatus.IDLE}),
    SyncStatus.FAILED: frozenset({SyncStatus.SYNCING, SyncStatus.IDLE}),
}


def can_transition(current: SyncStatus, target: SyncStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[SyncStatus(current)]


def ensure_transition(current: SyncStatus, target: SyncStatus) -> None:
    """Raise InvalidStatusTransition unless ``current -> target`` is legal."""

    if not can_transition(current, target):
        raise InvalidStatusTransition(SyncStatus(current).value, SyncStatus(target).value)


def path_to_syncing(current: SyncStatus) -> list[SyncStatus]:
    """Return the transitions needed to start a sync from ``current``.

    A finished ``success`` surfaces to ``idle`` first. ``syncing`` has no path.
    """

    current = SyncStatus(current)
    if current == SyncStatus.SUCCESS:
        return [SyncStatus.IDLE, SyncStatus.SYNCING]
    if current in (SyncStatus.IDLE, SyncStatus.FAILED):
        return [SyncStatus.SYNCING]
    raise InvalidStatusTransition(current.value, SyncStatus.SYNCING.value)
