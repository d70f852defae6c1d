"""Angle math shared by the spin resolver and the rigging path.

Coordinate conventions:
  - Slices are laid out in the wheel's own frame starting at -90 degrees
    (12 o'clock) and proceeding in order, slice i spanning
    [i * slice - 90, (i + 1) * slice - 90).
  - Rotation is cumulative and unbounded. A wheel turned by R shows, under
    the fixed pointer at 0 degrees, the slice whose local angle is R mod 360.
    Renderers draw the wheel so that local angle A appears at screen angle
    A - R. A renderer that rotates the other way, reading the pointer at
    (360 - R) mod 360, will disagree with every winner computed here.
"""

from __future__ import annotations

from typing import Tuple

from core.constants import SpinDefaults

FULL_TURN = 360.0
HALF_TURN = 180.0


def normalize_angle(angle: float) -> float:
    """Wrap any angle into [0, 360)."""
    wrapped = angle % FULL_TURN
    # -1e-17 % 360 rounds to 360.0
    if wrapped >= FULL_TURN:
        wrapped -= FULL_TURN
    return wrapped


def slice_angle(entry_count: int) -> float:
    if entry_count < 1:
        raise ValueError("entry_count must be >= 1")
    return FULL_TURN / entry_count


def slice_bounds(index: int, entry_count: int) -> Tuple[float, float]:
    """Start and end of slice ``index`` in [0, 360); end < start when it wraps."""
    width = slice_angle(entry_count)
    start = normalize_angle(index * width + SpinDefaults.SLICE_ORIGIN)
    end = normalize_angle((index + 1) * width + SpinDefaults.SLICE_ORIGIN)
    return start, end


def slice_center_angle(index: int, entry_count: int) -> float:
    width = slice_angle(entry_count)
    return normalize_angle(index * width + SpinDefaults.SLICE_ORIGIN + width / 2)


def circular_distance(a: float, b: float) -> float:
    """Shortest distance between two angles, in [0, 180]."""
    diff = abs(normalize_angle(a) - normalize_angle(b))
    return FULL_TURN - diff if diff > HALF_TURN else diff


def pointer_local_angle(rotation: float) -> float:
    """Wheel-local angle sitting under the pointer after turning by ``rotation``."""
    return normalize_angle(normalize_angle(rotation) - SpinDefaults.POINTER_ANGLE)


def _in_slice(angle: float, start: float, end: float, entry_count: int) -> bool:
    if entry_count == 1:
        return True
    if start < end:
        return start <= angle < end
    # Slice crosses the 0/360 boundary
    return angle >= start or angle < end


def slice_index_at(rotation: float, entry_count: int) -> int:
    """Index of the slice under the pointer for a final rotation.

    Always returns exactly one index in [0, entry_count). If float rounding
    leaves the pointer outside every half-open range, the slice whose centre
    is closest wins.
    """
    local = pointer_local_angle(rotation)
    for index in range(entry_count):
        start, end = slice_bounds(index, entry_count)
        if _in_slice(local, start, end, entry_count):
            return index
    return closest_slice_index(rotation, entry_count)


def closest_slice_index(rotation: float, entry_count: int) -> int:
    """Slice whose centre is nearest the pointer; needs no range checks."""
    local = pointer_local_angle(rotation)
    return min(
        range(entry_count),
        key=lambda i: circular_distance(local, slice_center_angle(i, entry_count)),
    )


def shortest_adjustment(target: float, current: float) -> float:
    """Signed turn from ``current`` to ``target``, normalized into (-180, 180]."""
    adjustment = normalize_angle(target) - normalize_angle(current)
    if adjustment > HALF_TURN:
        adjustment -= FULL_TURN
    elif adjustment <= -HALF_TURN:
        adjustment += FULL_TURN
    return adjustment


def random_end_rotation(start: float, spins: float, offset: float) -> float:
    return start + spins * FULL_TURN + offset


def rigged_end_rotation(
    start: float,
    spins: float,
    target_index: int,
    entry_count: int,
) -> Tuple[float, float]:
    """End rotation landing the pointer on the centre of ``target_index``.

    Returns ``(end_rotation, adjustment)``; ``end_rotation mod 360`` equals
    the slice centre up to float error, whatever the start rotation.
    """
    if not 0 <= target_index < entry_count:
        raise ValueError(f"target_index {target_index} outside [0, {entry_count})")
    base_end = start + spins * FULL_TURN
    center = slice_center_angle(target_index, entry_count)
    adjustment = shortest_adjustment(center + SpinDefaults.POINTER_ANGLE, base_end)
    return base_end + adjustment, adjustment
