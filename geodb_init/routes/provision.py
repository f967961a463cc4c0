from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from geodb_init.models.provision import ProvisionResult
from geodb_init.services.dependencies import get_provision_service
from geodb_init.services.provision_service import ProvisionService

router = APIRouter(prefix="/provision", tags=["provision"])


@router.post("", response_model=ProvisionResult)
async def provision(
    response: Response,
    svc: ProvisionService = Depends(get_provision_service),
) -> ProvisionResult:
    result = await svc.run()
    response.status_code = result.status
    return result
