"""JournalEntry data model."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from weekjournal.models.checks import FIXED_CHECK_IDS
from weekjournal.models.trade import TradeRecord


def _default_answers() -> dict[str, bool]:
    return {check_id: False for check_id in FIXED_CHECK_IDS}


class WeekStats(BaseModel):
    """Trade statistics for one week."""

    number_of_trades: int = Field(
        default=0, ge=0, alias="numberOfTrades", description="Trades taken"
    )
    pnl: float = Field(default=0.0, description="Net P&L for the week")

    model_config = {"frozen": True, "populate_by_name": True}


class Screenshot(BaseModel):
    """An image attached to a journal entry."""

    id: str = Field(..., description="Screenshot ID")
    name: str = Field(default="", description="Original file name")
    image_data: str = Field(
        ..., alias="imageData", description="Inline data URL of the image"
    )

    model_config = {"frozen": True, "populate_by_name": True}


class JournalEntry(BaseModel):
    """Represents the journal content for one trading week."""

    context: str = Field(default="", description="Free-form weekly notes")
    answers: dict[str, bool] = Field(
        default_factory=_default_answers, description="Fixed checklist answers"
    )
    custom_answers: dict[str, bool] = Field(
        default_factory=dict,
        alias="customAnswers",
        description="Answers keyed by custom check ID",
    )
    stats: WeekStats = Field(default_factory=WeekStats, description="Trade stats")
    tags: list[str] = Field(default_factory=list, description="Unique tags")
    screenshots: list[Screenshot] = Field(default_factory=list)
    trades: list[TradeRecord] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, tags: list[str]) -> list[str]:
        seen: dict[str, None] = {}
        for tag in tags:
            tag = tag.strip()
            if tag:
                seen.setdefault(tag, None)
        return list(seen)

    def to_document(self) -> dict:
        """Serialize to the camelCase JSON shape used by caches and backups."""
        return self.model_dump(mode="json", by_alias=True)
