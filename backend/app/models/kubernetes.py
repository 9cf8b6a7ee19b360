from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class NamespaceInfo(BaseModel):
    """Basic namespace information"""
    name: str
    status: Optional[str] = None
    created_at: Optional[datetime] = None


class PodInfo(BaseModel):
    """Basic pod information"""
    name: str
    namespace: str
    status: Optional[str] = None
    node: Optional[str] = None
    created_at: Optional[datetime] = None


class NodeInfo(BaseModel):
    """Basic node information"""
    name: str
    cpu: Optional[str] = None
    memory: Optional[str] = None
    status: str = "Unknown"


class ErrorResponse(BaseModel):
    """Error response model"""
    error: str
    detail: Optional[str] = None
