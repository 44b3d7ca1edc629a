"""Execution submission and history route handlers."""

from typing import Any, Union

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from agentmarket.api.dependencies import get_execution_service
from agentmarket.api.schemas.executions import (
    ExecutionFailedResponse,
    ExecutionListResponse,
    ExecutionResponse,
    SubmitExecutionRequest,
    SubmitExecutionResponse,
)
from agentmarket.execution.models import Execution, ExecutionStatus
from agentmarket.execution.service import ExecutionService

router = APIRouter(prefix="/api", tags=["executions"])


def _serialize(execution: Execution) -> dict[str, Any]:
    return execution.model_dump(mode="json", by_alias=True)


@router.post(
    "/submit-execution",
    response_model=SubmitExecutionResponse,
    responses={500: {"model": ExecutionFailedResponse}},
)
async def submit_execution(
    request: SubmitExecutionRequest,
    service: ExecutionService = Depends(get_execution_service),
) -> Union[SubmitExecutionResponse, JSONResponse]:
    """Run an agent and return its normalized result.

    Invalid inputs are rejected with 400 before any execution record exists.
    An execution that ran but failed upstream is answered with 500 and the
    failure message; its record is kept as ``failed``.
    """
    execution = await service.submit(request.agent_id, request.user_id, request.inputs)

    if execution.status == ExecutionStatus.FAILED:
        result = execution.result or {}
        body = ExecutionFailedResponse(
            execution_id=execution.execution_id,
            message=execution.error or "Agent execution failed",
            details=result.get("details"),
        )
        return JSONResponse(status_code=500, content=body.model_dump(mode="json"))

    return SubmitExecutionResponse(execution_id=execution.execution_id, result=execution.result)


@router.get("/executions/{user_id}", response_model=ExecutionListResponse)
async def list_executions(
    user_id: str, service: ExecutionService = Depends(get_execution_service)
) -> ExecutionListResponse:
    """A user's executions, newest first."""
    executions = await service.list_for_user(user_id)
    return ExecutionListResponse(
        executions=[_serialize(e) for e in executions], count=len(executions)
    )


@router.get("/executions/{user_id}/{execution_id}", response_model=ExecutionResponse)
async def get_execution(
    user_id: str,
    execution_id: str,
    service: ExecutionService = Depends(get_execution_service),
) -> ExecutionResponse:
    execution = await service.get(user_id, execution_id)
    return ExecutionResponse(execution=_serialize(execution))
