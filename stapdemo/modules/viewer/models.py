"""
Viewer data models.

These models define the JSON shapes returned by the viewer API.
"""

from typing import Optional

from pydantic import BaseModel, Field


class TableRow(BaseModel):
    """One base table from information_schema."""

    table_schema: str = Field(..., description="Schema name")
    table_name: str = Field(..., description="Table name")


class SessionInfo(BaseModel):
    """Server-side view of the current connection."""

    current_database: Optional[str] = None
    server_ip: Optional[str] = None
    client_ip: Optional[str] = None
    now: Optional[str] = None
    version: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error payload for failed API queries."""

    error: str
