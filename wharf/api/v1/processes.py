"""Process management API endpoints.

POST /v1/processes/manage - start/stop/restart/delete/list/status
"""

from __future__ import annotations

from contextlib import AsyncExitStack

from fastapi import APIRouter, File, Form, UploadFile
from pydantic import BaseModel

from wharf.api.dependencies import ProcessServiceDep, SettingsDep, spool

router = APIRouter()


class ProcessResponse(BaseModel):
    name: str
    pid: int | None
    internal_id: int | None
    status: str
    restart_count: int
    started_at_ms: int | None = None


class ProcessStatusResponse(BaseModel):
    name: str
    pid: int | None
    internal_id: int | None
    status: str
    restart_count: int
    uptime_ms: int | None


class ManageResponse(BaseModel):
    """Process management response.

    `processes` is filled for start/stop/restart/delete/list, `status` for
    the status action.
    """

    message: str
    processes: list[ProcessResponse] | None = None
    status: list[ProcessStatusResponse] | None = None


@router.post("/manage", response_model=ManageResponse, response_model_exclude_none=True)
async def manage(
    process_svc: ProcessServiceDep,
    settings: SettingsDep,
    private_key: UploadFile | None = File(None, alias="privateKey"),
    name: str | None = Form(None, description="Identity"),
    action: str | None = Form(None, description="start | stop | restart | delete | list | status"),
    project_name: str | None = Form(None, alias="projectName"),
    script_path: str | None = Form(None, alias="scriptPath"),
) -> ManageResponse:
    """Run one supervisor action for an authenticated identity."""
    async with AsyncExitStack() as stack:
        key_artifact = await spool(stack, private_key, settings)
        result = await process_svc.manage(name, key_artifact, action, project_name, script_path)

    if result.status is not None:
        return ManageResponse(
            message=result.message,
            status=[ProcessStatusResponse(**s.to_dict()) for s in result.status],
        )
    return ManageResponse(
        message=result.message,
        processes=[ProcessResponse(**p.to_dict()) for p in result.processes],
    )
