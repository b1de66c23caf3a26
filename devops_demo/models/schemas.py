from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class GreetingResponse(BaseModel):
    message: str
    timestamp: datetime = Field(default_factory=utc_now)
    environment: str
    pod: str
    version: str


class HealthResponse(BaseModel):
    status: Literal["healthy"] = "healthy"
    timestamp: datetime = Field(default_factory=utc_now)
    uptime: float = Field(ge=0)
    environment: str
    version: str


class ReadinessResponse(BaseModel):
    status: Literal["ready"] = "ready"
    timestamp: datetime = Field(default_factory=utc_now)


class ServiceStatuses(BaseModel):
    database: str = "healthy"
    cache: str = "healthy"
    external_api: str = "healthy"


class StatusResponse(BaseModel):
    status: Literal["operational"] = "operational"
    services: ServiceStatuses = Field(default_factory=ServiceStatuses)
    timestamp: datetime = Field(default_factory=utc_now)


class RuntimeEnvironment(BaseModel):
    python_version: str
    platform: str
    arch: str
    env: str


class InfoResponse(BaseModel):
    name: str
    version: str
    description: str
    features: list[str]
    environment: RuntimeEnvironment


class ErrorResponse(BaseModel):
    error: str
    message: str
