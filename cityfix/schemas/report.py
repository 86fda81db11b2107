"""
API schemas for Report endpoints
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from cityfix.models.report import Report


class ReportCreate(BaseModel):
    """Schema for creating a new report"""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    category: Optional[str] = Field(None, max_length=100)
    priority: Optional[str] = Field(None, max_length=20)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class ReportUpdate(BaseModel):
    """Schema for updating an existing report; unset fields are left alone"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    status: Optional[str] = Field(None, max_length=20)
    category: Optional[str] = Field(None, max_length=100)
    priority: Optional[str] = Field(None, max_length=20)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class ReportResponse(BaseModel):
    id: int
    user_id: int
    title: str
    description: Optional[str] = None
    status: str
    category: Optional[str] = None
    priority: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_report(cls, report: Report) -> "ReportResponse":
        return cls(**report.model_dump())
