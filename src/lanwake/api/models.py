"""Pydantic request/response models for the lanwake API."""

from typing import Optional

from pydantic import BaseModel, Field


class DeviceModel(BaseModel):
    name: str = ""
    mac: str = ""
    ip: Optional[str] = None
    broadcast: Optional[str] = None


class DeviceUpdateRequest(BaseModel):
    """Partial update; only keys present in the request body are applied."""

    name: Optional[str] = None
    mac: Optional[str] = None
    ip: Optional[str] = None
    broadcast: Optional[str] = None


class DeviceListResponse(BaseModel):
    devices: list[DeviceModel]
    count: int


class WakeRequest(BaseModel):
    mac: str = ""
    broadcast: Optional[str] = None


class WakeMultipleRequest(BaseModel):
    devices: list[str] = Field(default_factory=list)


class WakeResultModel(BaseModel):
    success: bool
    device: str
    mac: str
    message: str


class WakeSummary(BaseModel):
    total: int
    successful: int
    failed: int
    notFound: Optional[int] = None


class WakeAllResponse(BaseModel):
    results: list[WakeResultModel]
    summary: WakeSummary


class WakeMultipleResponse(BaseModel):
    results: list[WakeResultModel]
    notFound: list[str]
    summary: WakeSummary
