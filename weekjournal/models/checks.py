"""Checklist data models."""

from pydantic import BaseModel, Field


class CustomCheck(BaseModel):
    """A user-defined checklist item shared across all weeks."""

    id: str = Field(..., min_length=1, description="Stable checklist item ID")
    label: str = Field(..., description="Text shown next to the checkbox")

    model_config = {"frozen": True}


# Fixed checklist shown for every week, in display order.
FIXED_CHECKS: tuple[tuple[str, str], ...] = (
    ("stopLossPlaced", "Placed a stop loss on every trade"),
    ("followedPlan", "Followed the trading plan"),
    ("riskWithinLimit", "Kept risk per trade within limit"),
)

FIXED_CHECK_IDS: tuple[str, ...] = tuple(check_id for check_id, _ in FIXED_CHECKS)
