"""
Pydantic schemas for request/response validation.

This module contains:
- The request model for POST /api/messages
- Response models for API responses
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Pydantic Request Models
# =============================================================================

class MessageCreateRequest(BaseModel):
    """
    Body of POST /api/messages.

    Fields are untyped. Type and emptiness checks happen in
    messagewall.validation after the rate limit, each with its own error code.
    """
    content: Any = Field(None, description="Message text")
    kind: Any = Field(None, alias="type", description="'wall' (default) or 'note'")
    nickname: Any = Field(None, description="Display name, up to 16 characters")

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={
            "examples": [
                {"content": "hello", "type": "wall", "nickname": "alice"}
            ]
        },
    )


# =============================================================================
# Pydantic Response Models
# =============================================================================

class MessageRecord(BaseModel):
    """A stored message as returned by the listing endpoints."""
    id: int = Field(..., description="Store-assigned, strictly increasing id")
    identity: str = Field(..., description="Token of the posting client")
    nickname: Optional[str] = Field(None, description="Display name")
    content: str = Field(..., description="HTML-escaped message text")
    kind: str = Field(..., description="'wall' or 'note'")
    created_at: int = Field(..., description="Server time in ms since epoch")

    model_config = ConfigDict(from_attributes=True)


class MessageListResponse(BaseModel):
    """Response model for GET /api/messages and GET /api/my-messages."""
    items: List[MessageRecord] = Field(
        default_factory=list,
        alias="list",
        serialization_alias="list",
        description="Messages, newest first",
    )

    model_config = ConfigDict(populate_by_name=True)


class MessageCreatedResponse(BaseModel):
    """Response model for a successful POST /api/messages."""
    id: int
    created_at: int


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    ok: bool
    reason: Optional[str] = Field(None, description="Reason if not ready")

    model_config = ConfigDict(json_schema_extra={"examples": [{"ok": True}]})
