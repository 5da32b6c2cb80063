"""TradeRecord data model."""

from datetime import datetime
from pydantic import BaseModel, Field


class TradeRecord(BaseModel):
    """Represents one row of an imported broker trade log."""

    time: datetime = Field(..., description="Trade open timestamp (local time)")
    symbol: str = Field(default="", description="Trading symbol")
    type: str = Field(default="", description="Trade side (buy/sell)")
    lots: float = Field(default=0.0, ge=0, description="Trade volume in lots")
    profit: float = Field(default=0.0, description="Realized profit")

    model_config = {"frozen": True}
