"""Deployments API endpoints.

POST /v1/deployments - upload and deploy an artifact (multipart/form-data)
"""

from __future__ import annotations

from contextlib import AsyncExitStack

from fastapi import APIRouter, File, Form, UploadFile
from pydantic import BaseModel

from wharf.api.dependencies import DeploymentServiceDep, SettingsDep, spool

router = APIRouter()


class DeploymentResponse(BaseModel):
    """Deployment response model.

    status is "success" or "warning"; failures are returned as error
    envelopes with a non-2xx status code.
    """

    status: str
    message: str
    file_path: str
    warning: str | None = None
    files_extracted: int | None = None


@router.post("", response_model=DeploymentResponse)
async def deploy(
    deployment_svc: DeploymentServiceDep,
    settings: SettingsDep,
    file: UploadFile | None = File(None, description="Artifact: .zip, .tar.gz or any single file"),
    private_key: UploadFile | None = File(None, alias="privateKey"),
    name: str | None = Form(None, description="Identity"),
    path: str = Form("", description="Subdirectory relative to the upload directory"),
    type: str = Form("generic", description="Application type: generic | node"),
) -> DeploymentResponse:
    """Upload an artifact and deploy it into an authorized directory.

    Multipart fields:
    - file: the artifact
    - privateKey: PEM private key matching the server-held public key for `name`
    - name: identity
    - path: target subdirectory (optional)
    - type: application type; "node" installs dependencies and runs the deploy script
    """
    async with AsyncExitStack() as stack:
        key_artifact = await spool(stack, private_key, settings)
        artifact = await spool(stack, file, settings)
        result = await deployment_svc.deploy(name, key_artifact, artifact, path, type)

    return DeploymentResponse(
        status=result.status.value,
        message=result.message,
        file_path=result.file_path,
        warning=result.warning,
        files_extracted=result.files_extracted,
    )
