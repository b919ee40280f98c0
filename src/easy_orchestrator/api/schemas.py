"""Pydantic request/response models for the HTTP API."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ExecuteGoalRequest(BaseModel):
    """Request to execute a goal."""

    goal: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)
    """Caller context; ``session_id`` continues an existing session, any
    other keys are passed through to planning and tools untouched."""


class ExecuteGoalResponse(BaseModel):
    success: bool
    result: Dict[str, Any]
    timestamp: str


class StatusResponse(BaseModel):
    success: bool
    status: Dict[str, Any]
    timestamp: str


class AgentInfo(BaseModel):
    name: str
    state: Optional[Dict[str, Any]] = None
    status: str


class AgentListResponse(BaseModel):
    success: bool
    agents: List[AgentInfo]
    total_agents: int
    timestamp: str


class ClearSessionResponse(BaseModel):
    success: bool
    cleared: bool
    session_id: str
    timestamp: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    details: Optional[str] = None
    timestamp: Optional[str] = None
