"""Gateway instance routes.

POST   /instances          → create + connect
GET    /instances          → list gateway instances
GET    /instances/{name}   → status with profile (open) or QR (close/connecting)
DELETE /instances/{name}   → logout + delete
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, ConfigDict, Field

from zaphub.api.deps import get_instance_manager
from zaphub.api.errors import UpstreamError
from zaphub.observability.logging import get_logger
from zaphub.whatsapp.evolution_client import EvolutionAPIError
from zaphub.whatsapp.instances import GatewayUnavailableError, InstanceManager

logger = get_logger(__name__)

router = APIRouter(prefix="/instances", tags=["instances"])


class CreateInstanceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    instance_name: str = Field(..., min_length=1, alias="instanceName")
    webhook_url: str | None = Field(None, alias="webhookUrl")


def _unavailable() -> UpstreamError:
    return UpstreamError(
        "Evolution API is not available",
        details="Check that the Evolution API server is running",
        status_code=503,
    )


@router.get("")
def list_instances(manager: InstanceManager = Depends(get_instance_manager)) -> dict:
    try:
        instances = manager.list_instances()
    except GatewayUnavailableError:
        raise _unavailable() from None
    except EvolutionAPIError as e:
        raise UpstreamError("Failed to fetch instances", details=str(e)) from e
    return {"success": True, "instances": instances}


@router.post("")
def create_instance(
    body: CreateInstanceRequest,
    manager: InstanceManager = Depends(get_instance_manager),
) -> dict:
    """Create and connect an instance; the QR comes back while it is connecting."""
    try:
        instance = manager.create_instance(body.instance_name, body.webhook_url)
    except GatewayUnavailableError:
        raise _unavailable() from None
    except EvolutionAPIError as e:
        raise UpstreamError("Failed to create instance", details=str(e)) from e
    return {
        "success": True,
        "instance": instance,
        "message": "Instance created successfully",
    }


@router.get("/{instance_name}")
def get_instance_status(
    instance_name: str = Path(..., min_length=1),
    manager: InstanceManager = Depends(get_instance_manager),
) -> dict:
    try:
        status = manager.get_status(instance_name)
    except EvolutionAPIError as e:
        raise UpstreamError("Failed to get instance status", details=str(e)) from e
    return {"success": True, **status}


@router.delete("/{instance_name}")
def delete_instance(
    instance_name: str = Path(..., min_length=1),
    manager: InstanceManager = Depends(get_instance_manager),
) -> dict:
    try:
        manager.delete_instance(instance_name)
    except EvolutionAPIError as e:
        raise UpstreamError("Failed to delete instance", details=str(e)) from e
    return {"success": True, "message": "Instance deleted successfully"}
