# ui_actionable/configs/models.py
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ChannelSettings(BaseModel):
    component_id: str = Field("action_channel", min_length=1, description="Prefix used in log lines and stats")
    debug: bool = Field(False, description="Raise defect errors instead of logging them")
    max_history: int = Field(1000, ge=0, description="Emitted actions kept for inspection")
    reservation_ticks: int = Field(
        1,
        ge=1,
        description="Scheduling ticks an emitter yields before deciding nobody reserved the result",
    )

    model_config = ConfigDict(extra="forbid")
