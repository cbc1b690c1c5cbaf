"""Text query endpoint.

This module provides the endpoint that answers a user's text query with the
reasoning engine, executing provider tools when the engine requests them.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from pilot_server.dependencies import get_orchestrator
from pilot_server.errors import (
    ModelTimeoutError,
    NoProvidersAvailableError,
    UpstreamModelError,
)
from pilot_server.models.text import TextRequest, TextResponse, ToolCallSummary
from pilot_server.services import ToolOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/text", tags=["text"])


@router.post("", response_model=TextResponse)
async def process_text(
    request_body: TextRequest,
    orchestrator: ToolOrchestrator = Depends(get_orchestrator),
) -> TextResponse:
    """Answer a text query, using provider tools as needed.

    Args:
        request_body: Text request containing the user's query
        orchestrator: Injected tool orchestrator

    Returns:
        TextResponse with the final answer and the tools that were attempted

    Raises:
        HTTPException: 503 if no provider is reachable, 504 if the engine
                       timed out, 502 if the engine call failed
    """
    logger.info(f"Processing text query ({len(request_body.text)} characters)")

    try:
        result = await orchestrator.run(request_body.text)
    except NoProvidersAvailableError as e:
        logger.error(f"Text query failed: {e}")
        raise HTTPException(
            status_code=503,
            detail={
                "error": {
                    "code": "no_providers_available",
                    "message": str(e),
                    "details": {"providers": e.failures},
                }
            },
        )
    except ModelTimeoutError as e:
        logger.error(f"Text query failed: {e}")
        raise HTTPException(
            status_code=504,
            detail={
                "error": {
                    "code": "model_timeout",
                    "message": str(e),
                    "details": {"engine": e.engine, "timeout": e.timeout},
                }
            },
        )
    except UpstreamModelError as e:
        logger.error(f"Text query failed: {e}")
        raise HTTPException(
            status_code=502,
            detail={
                "error": {
                    "code": "upstream_model_error",
                    "message": str(e),
                    "details": {"engine": e.engine},
                }
            },
        )

    logger.info(
        f"Answered text query with {len(result.tools_used)} tool call(s): "
        f"{result.tools_used}"
    )

    return TextResponse(
        response=result.response_text,
        tools_used=result.tools_used,
        tool_calls=[
            ToolCallSummary(
                id=invocation.call_id,
                name=invocation.tool_name,
                provider=invocation.provider,
                ok=invocation.ok,
                error_kind=invocation.error_kind,
                duration_ms=invocation.duration_ms,
            )
            for invocation in result.invocations
        ],
    )
