"""Usage Schemas — aggregate usage summary for one tenant over a window.

Invariants:
    - All counts are non-negative; an empty window yields zeros, never an error
    - window_from/window_to serialize as "from"/"to" (inclusive bounds, UTC)
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UsageSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tenant_id: str
    window_from: datetime = Field(serialization_alias="from")
    window_to: datetime = Field(serialization_alias="to")
    calls: int = 0
    duration_seconds: float = 0.0
    minutes: int = 0
    tokens: int = 0
    characters: int = 0
