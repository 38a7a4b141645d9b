from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class EntryRecord(BaseModel):
    id: int
    email: str
    visits: int
    timestamp: datetime


class EntryOut(BaseModel):
    id: int
    email: str
    visits: int
    timestamp: str


class ErrorResponse(BaseModel):
    error: str
