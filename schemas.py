"""Pydantic schemas for Reminder Dispatcher.

Snapshot records loaded from the store and the response shapes of the
trigger endpoints.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ReminderRecord(BaseModel):
    """A reminder as read from the store.

    next_date stays a raw string: malformed values must reach the selector
    (which treats them as never due) instead of failing validation.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    notes: Optional[str] = None
    next_date: Optional[str] = None
    cycle: Optional[str] = "once"
    target_device_id: Optional[str] = None
    is_critical: Optional[bool] = None

    @field_validator("id", "target_device_id", mode="before")
    @classmethod
    def _as_string(cls, value):
        # Identifiers are compared as strings
        return None if value is None else str(value)


class DeviceRecord(BaseModel):
    """A push target as read from the store."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    bark_key: str

    @field_validator("id", mode="before")
    @classmethod
    def _as_string(cls, value):
        return str(value)


class SettingsRecord(BaseModel):
    """Global settings singleton."""

    model_config = ConfigDict(from_attributes=True)

    bark_critical: bool = False


class Snapshot(BaseModel):
    """Everything one dispatch cycle reads from the store."""

    reminders: List[ReminderRecord] = Field(default_factory=list)
    devices: List[DeviceRecord] = Field(default_factory=list)
    settings: Optional[SettingsRecord] = None


class DispatchDetail(BaseModel):
    """Outcome of one processed reminder.

    sentTo lists only devices whose delivery succeeded; devices that were
    targeted but failed are left out.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Reminder identifier")
    sent_to: List[str] = Field(
        default_factory=list,
        alias="sentTo",
        description="Names of devices whose delivery succeeded (failed deliveries are omitted)"
    )
    next_date: Optional[str] = Field(None, description="New due value, null when the reminder stops recurring")


class DispatchReport(BaseModel):
    """Response body of a successful cycle."""

    sent: int = Field(..., description="Number of reminders processed")
    details: List[DispatchDetail] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "sent": 1,
                "details": [
                    {"id": "42", "sentTo": ["iPhone"], "next_date": "2025-10-27T08:00"}
                ]
            }
        }
    )


class ErrorResponse(BaseModel):
    """Structured error body for every fatal condition."""

    error: str
    detail: Optional[str] = None


class PublicConfig(BaseModel):
    """Browser-facing store settings."""

    url: str
    key: str
