from .opponent_activity import (
    OpponentActivity,
    OpponentActivityStatus,
    build_opponent_activity,
    classify_silence,
)
from .timeline import (
    Channel,
    CorrespondenceItem,
    CorrespondenceTimeline,
    Direction,
    LongGap,
    Party,
    build_correspondence_timeline,
    build_timeline,
    dedupe_items,
)

__all__ = [
    "Channel",
    "CorrespondenceItem",
    "CorrespondenceTimeline",
    "Direction",
    "LongGap",
    "OpponentActivity",
    "OpponentActivityStatus",
    "Party",
    "build_correspondence_timeline",
    "build_opponent_activity",
    "build_timeline",
    "classify_silence",
    "dedupe_items",
]
