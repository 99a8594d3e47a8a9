from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from deepresearch.models.events import ActivityStatus, ActivityType, EventType, SSEEvent


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def progress_init(max_depth: int, total_steps: int) -> SSEEvent:
    return SSEEvent(
        event=EventType.PROGRESS_INIT,
        data={"maxDepth": max_depth, "totalSteps": total_steps},
    )


def activity(
    activity_type: ActivityType,
    status: ActivityStatus,
    message: str,
    *,
    depth: int,
    completed_steps: int,
    total_steps: int,
    timestamp: str | None = None,
) -> SSEEvent:
    return SSEEvent(
        event=EventType.ACTIVITY_DELTA,
        data={
            "type": activity_type.value,
            "status": status.value,
            "message": message,
            "timestamp": timestamp or utc_timestamp(),
            "depth": depth,
            "completedSteps": completed_steps,
            "totalSteps": total_steps,
        },
    )


def source(url: str, title: str, relevance: str) -> SSEEvent:
    return SSEEvent(
        event=EventType.SOURCE_DELTA,
        data={"url": url, "title": title, "relevance": relevance},
    )


def finish(text: str, *, create_artifact: bool, topic: str, format: str = "markdown") -> SSEEvent:
    return SSEEvent(
        event=EventType.FINISH,
        data={
            "text": text,
            "format": format,
            "createArtifact": create_artifact,
            "topic": topic,
        },
    )


def result(payload: dict[str, Any]) -> SSEEvent:
    return SSEEvent(event=EventType.RESULT, data=payload)


def error(message: str, **kwargs: Any) -> SSEEvent:
    data: dict[str, Any] = {"message": message}
    data.update(kwargs)
    return SSEEvent(event=EventType.ERROR, data=data)
