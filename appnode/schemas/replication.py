"""Pydantic schemas for replication endpoints."""

from typing import List

from pydantic import BaseModel


class ReplicationStatusResponse(BaseModel):
    """Response model for the replication status endpoint."""
    role: str
    outbound_connected: bool
    primary_url: str
    dial_attempts: int
    listener_running: bool
    listener_port: int
    followers: List[str]
