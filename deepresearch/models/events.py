from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    PROGRESS_INIT = "progress-init"
    ACTIVITY_DELTA = "activity-delta"
    SOURCE_DELTA = "source-delta"
    FINISH = "finish"
    RESULT = "result"
    ERROR = "error"


class ActivityType(str, Enum):
    SEARCH = "search"
    EXTRACT = "extract"
    ANALYZE = "analyze"
    REASONING = "reasoning"
    SYNTHESIS = "synthesis"
    THOUGHT = "thought"


class ActivityStatus(str, Enum):
    PENDING = "pending"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class SSEEvent:
    event: EventType
    data: dict[str, Any] = field(default_factory=dict)

    def format(self) -> str:
        return f"event: {self.event.value}\ndata: {json.dumps(self.data)}\n\n"

    def to_sse(self) -> dict[str, str]:
        """Shape accepted by sse_starlette's EventSourceResponse."""
        return {"event": self.event.value, "data": json.dumps(self.data)}
