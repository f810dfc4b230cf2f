"""Tool API endpoints."""

from typing import Any

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from console_logs.tools import TOOLS, call_tool

router = APIRouter()

ERROR_STATUS = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "not_found": status.HTTP_404_NOT_FOUND,
    "index_degraded": status.HTTP_503_SERVICE_UNAVAILABLE,
    "storage": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ToolDescription(BaseModel):
    """Response model for a tool definition."""

    name: str
    description: str
    input_schema: dict[str, Any]


class ToolListResponse(BaseModel):
    """Response model for list of tools."""

    tools: list[ToolDescription]


class ToolCallResponse(BaseModel):
    """Response model for a successful tool call."""

    tool: str
    content: Any


@router.get("/tools", response_model=ToolListResponse)
def list_tools():
    """List available tools with their argument schemas."""
    return ToolListResponse(
        tools=[
            ToolDescription(
                name=tool.name,
                description=tool.description,
                input_schema=tool.input_schema(),
            )
            for tool in TOOLS.values()
        ]
    )


@router.post("/tools/{name}", response_model=ToolCallResponse)
def run_tool(name: str, arguments: dict[str, Any] | None = None):
    """Run a tool by name."""
    result = call_tool(name, arguments)

    if result.is_error:
        raise HTTPException(
            status_code=ERROR_STATUS.get(
                result.error_kind, status.HTTP_500_INTERNAL_SERVER_ERROR
            ),
            detail=result.content,
        )

    return ToolCallResponse(tool=name, content=result.content)
