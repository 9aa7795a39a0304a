"""Side-by-side placement of overlapping lesson cards in the day view.

Lessons are split into lanes by greedy interval partitioning; every lesson of
an overlapping cluster gets the same lane count so the cards share the width
evenly. Positions are emitted as CSS calc() strings for the client.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..common.time_utils import to_minutes
from ..core.constants import (
    ADDITIONAL_MARGIN,
    BUTTON_COLUMN_WIDTH,
    DAY_START_TIME,
    GAP_BETWEEN_LANES,
    LESSON_MARGIN,
    MIN_LESSON_HEIGHT,
    PIXELS_PER_MINUTE,
)
from ..lessons.model import Lesson

LESSON_AREA_WIDTH = f"calc(100% - {BUTTON_COLUMN_WIDTH}px - {ADDITIONAL_MARGIN}px)"


@dataclass(frozen=True)
class LanePlacement:
    lesson: Lesson
    lane: int
    total_lanes: int


@dataclass(frozen=True)
class CardStyle:
    top: int
    height: int
    width: str
    left: str


def assign_lanes(lessons: Sequence[Lesson]) -> list[LanePlacement]:
    ordered = sorted(lessons, key=lambda l: (to_minutes(l.start_time), to_minutes(l.end_time)))

    placements: list[tuple[Lesson, int]] = []
    clusters: list[list[int]] = []  # indexes into placements
    lane_ends: list[int] = []
    cluster_end = -1

    for lesson in ordered:
        start, end = to_minutes(lesson.start_time), to_minutes(lesson.end_time)
        if start >= cluster_end:
            # Nothing still running: a new cluster starts with fresh lanes.
            clusters.append([])
            lane_ends = []

        for lane, last_end in enumerate(lane_ends):
            if last_end <= start:
                lane_ends[lane] = end
                break
        else:
            lane = len(lane_ends)
            lane_ends.append(end)

        clusters[-1].append(len(placements))
        placements.append((lesson, lane))
        cluster_end = max(cluster_end, end)

    out: list[LanePlacement] = []
    for members in clusters:
        total = max(placements[i][1] for i in members) + 1
        out.extend(LanePlacement(placements[i][0], placements[i][1], total) for i in members)
    return out


def lane_width(total_lanes: int) -> str:
    gaps = (total_lanes - 1) * GAP_BETWEEN_LANES
    return f"calc(({LESSON_AREA_WIDTH} - {gaps}px) / {total_lanes})"


def lane_left(lane: int, total_lanes: int) -> str:
    return f"calc({lane} * ({lane_width(total_lanes)}) + {lane * GAP_BETWEEN_LANES}px + {LESSON_MARGIN}px)"


def card_style(lane: int, total_lanes: int, start: str, end: str, *, day_start: str = DAY_START_TIME) -> CardStyle:
    top = (to_minutes(start) - to_minutes(day_start)) * PIXELS_PER_MINUTE
    height = max((to_minutes(end) - to_minutes(start)) * PIXELS_PER_MINUTE, MIN_LESSON_HEIGHT)
    return CardStyle(top=top, height=height, width=lane_width(total_lanes), left=lane_left(lane, total_lanes))
