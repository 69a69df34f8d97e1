"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class ListBasesRequest(BaseModel):
    """Body of POST /api/list-bases"""
    api_key: Optional[str] = Field(None, alias="apiKey")

    class Config:
        populate_by_name = True


class GenerateSnapshotRequest(BaseModel):
    """Body of POST /api/generate-snapshot"""
    api_key: Optional[str] = Field(None, alias="apiKey")
    base_id: Optional[str] = Field(None, alias="baseId")
    base_name: Optional[str] = Field(None, alias="baseName", description="Overrides the file name")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "apiKey": "patXXXXXXXXXXXXXX",
                "baseId": "appXXXXXXXXXXXXXX",
                "baseName": "Project Tracker"
            }
        }


class BaseInfo(BaseModel):
    id: str
    name: str
    permissionLevel: Optional[str] = None


class ErrorResponse(BaseModel):
    message: str
    error: Optional[str] = None


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = "healthy"
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    environment: str
    airtable_api: str
