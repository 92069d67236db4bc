"""Opponent activity status derived from the correspondence timeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from ..config import settings
from .timeline import Channel, CorrespondenceItem, CorrespondenceTimeline, Direction, as_utc

CHASER_KEYWORDS = ("chase", "follow", "reminder")


class OpponentActivityStatus(str, Enum):
    NO_DATA = "NO_DATA"
    NORMAL = "NORMAL"
    SLOWER_THAN_USUAL = "SLOWER_THAN_USUAL"
    CONCERNING_SILENCE = "CONCERNING_SILENCE"


@dataclass(frozen=True)
class OpponentActivity:
    status: OpponentActivityStatus
    status_message: str
    last_letter_sent_at: datetime | None = None
    last_chase_sent_at: datetime | None = None
    last_opponent_reply_at: datetime | None = None
    days_since_last_contact: int = 0
    current_silence_days: int = 0
    average_response_days: int | None = None
    generated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        def iso(value: datetime | None) -> str | None:
            return value.isoformat() if value else None

        return {
            "status": self.status.value,
            "status_message": self.status_message,
            "last_letter_sent_at": iso(self.last_letter_sent_at),
            "last_chase_sent_at": iso(self.last_chase_sent_at),
            "last_opponent_reply_at": iso(self.last_opponent_reply_at),
            "days_since_last_contact": self.days_since_last_contact,
            "current_silence_days": self.current_silence_days,
            "average_response_days": self.average_response_days,
            "generated_at": iso(self.generated_at),
        }


def is_chaser(item: CorrespondenceItem) -> bool:
    if item.direction is not Direction.OUTBOUND or item.channel is not Channel.LETTER:
        return False
    label = item.subject_or_label.lower()
    return any(keyword in label for keyword in CHASER_KEYWORDS)


def _latest(items: list[CorrespondenceItem]) -> datetime | None:
    return max((as_utc(item.created_at) for item in items), default=None)


def classify_silence(
    silence_days: int, average_days: int | None
) -> tuple[OpponentActivityStatus, str]:
    if silence_days == 0:
        return (
            OpponentActivityStatus.NORMAL,
            "Opponent has responded to latest correspondence",
        )
    if average_days and silence_days > average_days * settings.OPPONENT_CONCERN_MULTIPLIER:
        return (
            OpponentActivityStatus.CONCERNING_SILENCE,
            f"No response for {silence_days} days (usually responds in ~{average_days} days)",
        )
    if silence_days > settings.OPPONENT_SLOW_AVERAGE_DAYS:
        return (
            OpponentActivityStatus.SLOWER_THAN_USUAL,
            f"Awaiting response for {silence_days} days",
        )
    if silence_days > settings.LONG_GAP_THRESHOLD_DAYS:
        return (
            OpponentActivityStatus.SLOWER_THAN_USUAL,
            f"Response pending ({silence_days} days since last letter)",
        )
    return OpponentActivityStatus.NORMAL, "Response expected within standard timeframe"


def build_opponent_activity(
    timeline: CorrespondenceTimeline, now: datetime | None = None
) -> OpponentActivity:
    now = as_utc(now or datetime.now(timezone.utc))
    sent = [item for item in timeline.items if item.is_outbound_to_opponent]
    replies = [item for item in timeline.items if item.is_opponent_reply]
    chasers = [item for item in timeline.items if is_chaser(item)]

    last_sent = _latest(sent)
    last_reply = _latest(replies)
    last_chase = _latest(chasers)
    average = timeline.opponent_average_reply_days

    if last_sent is None:
        return OpponentActivity(
            status=OpponentActivityStatus.NO_DATA,
            status_message="No outgoing correspondence to the opponent recorded",
            last_chase_sent_at=last_chase,
            last_opponent_reply_at=last_reply,
            average_response_days=average,
            generated_at=now,
        )

    days_since = max(0, (now - last_sent).days)
    # Silent unless a reply arrived after our latest letter
    silence = 0 if last_reply is not None and last_reply >= last_sent else days_since
    status, message = classify_silence(silence, average)

    return OpponentActivity(
        status=status,
        status_message=message,
        last_letter_sent_at=last_sent,
        last_chase_sent_at=last_chase,
        last_opponent_reply_at=last_reply,
        days_since_last_contact=days_since,
        current_silence_days=silence,
        average_response_days=average,
        generated_at=now,
    )
