"""
On-disk file shapes for alert storage.

Models:
    CurrentAlertsFile: ``{alerts, metadata: {lastSaved, count}}``
    DailyAlertsFile: ``{date, alerts, metadata: {created, count}}``
    HistoricalAlertsFile: ``{alerts, metadata: {lastArchived, count}}``
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from airwatch.models.aircraft import WIRE_CONFIG
from airwatch.models.alerts import Alert


class CurrentFileMetadata(BaseModel):
    """Metadata of the current-snapshot file."""

    model_config = WIRE_CONFIG

    last_saved: Optional[int] = Field(
        default=None,
        description="Save time in epoch milliseconds",
    )
    count: int = Field(default=0, ge=0)


class DailyFileMetadata(BaseModel):
    """Metadata of a daily partition file."""

    model_config = WIRE_CONFIG

    created: Optional[int] = Field(
        default=None,
        description="Write time in epoch milliseconds",
    )
    count: int = Field(default=0, ge=0)


class HistoricalFileMetadata(BaseModel):
    """Metadata of the historical archive file."""

    model_config = WIRE_CONFIG

    last_archived: Optional[int] = Field(
        default=None,
        description="Archive time in epoch milliseconds",
    )
    count: int = Field(default=0, ge=0)


class CurrentAlertsFile(BaseModel):
    """Full active alert set as last saved."""

    model_config = WIRE_CONFIG

    alerts: List[Alert] = Field(default_factory=list)
    metadata: CurrentFileMetadata = Field(default_factory=CurrentFileMetadata)


class DailyAlertsFile(BaseModel):
    """Alerts created on one UTC calendar day."""

    model_config = WIRE_CONFIG

    date: str = Field(..., description="Calendar day (YYYY-MM-DD)")
    alerts: List[Alert] = Field(default_factory=list)
    metadata: DailyFileMetadata = Field(default_factory=DailyFileMetadata)


class HistoricalAlertsFile(BaseModel):
    """Every alert ever archived."""

    model_config = WIRE_CONFIG

    alerts: List[Alert] = Field(default_factory=list)
    metadata: HistoricalFileMetadata = Field(default_factory=HistoricalFileMetadata)
