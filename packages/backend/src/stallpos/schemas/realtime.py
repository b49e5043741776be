"""Schemas for the realtime ops endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RealtimeStats(BaseModel):
    """Connection/room counts. Serialized with camelCase keys for dashboards."""

    model_config = ConfigDict(populate_by_name=True)

    total_clients: int = Field(alias="totalClients")
    total_rooms: int = Field(alias="totalRooms")
    room_stats: dict[str, int] = Field(alias="roomStats")
    timestamp: datetime


class SystemMessageCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=500)
    type: str = Field(default="info", pattern=r"^(info|warning|error|success)$")
