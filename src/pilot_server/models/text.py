"""Pydantic models for text query requests and responses."""

from pydantic import BaseModel, ConfigDict, Field


class TextRequest(BaseModel):
    """Request body for POST /api/v1/text."""

    text: str = Field(min_length=1, description="The user's query")

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"text": "What is my current net worth?"},
            ]
        }
    )


class ToolCallSummary(BaseModel):
    """Outcome of one tool call made while answering a query."""

    id: str = Field(description="Correlation id of the tool call")
    name: str = Field(description="Tool name")
    provider: str | None = Field(default=None, description="Provider that owns the tool")
    ok: bool = Field(description="Whether the tool call succeeded")
    error_kind: str | None = Field(
        default=None,
        description="Failure kind: not_found, execution, connection, protocol, or timeout",
    )
    duration_ms: float = Field(default=0.0, description="Time spent on the call")


class TextResponse(BaseModel):
    """Response body for POST /api/v1/text."""

    response: str = Field(description="The final answer")
    tools_used: list[str] = Field(
        default_factory=list, description="Names of every tool that was attempted"
    )
    tool_calls: list[ToolCallSummary] = Field(
        default_factory=list, description="Per-call outcomes"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "response": "Your accounts total $42,150.",
                "tools_used": ["get_account_balances"],
                "tool_calls": [
                    {
                        "id": "toolu_01",
                        "name": "get_account_balances",
                        "provider": "finance",
                        "ok": True,
                        "error_kind": None,
                        "duration_ms": 41.7,
                    }
                ],
            }
        }
    )
