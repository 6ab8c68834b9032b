"""Pydantic models for LayerZero Scan responses."""

from typing import List, Optional
from pydantic import BaseModel


class MessageStatus(BaseModel):
    """Delivery status of one message."""
    name: Optional[str] = None
    message: Optional[str] = None


class ScanMessage(BaseModel):
    """One cross-chain message as indexed by the scan service."""
    status: Optional[MessageStatus] = None


class ScanResponse(BaseModel):
    """Body of GET /v1/messages/tx/{hash}."""
    data: List[ScanMessage] = []
