from contextlib import asynccontextmanager
import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette import status

from geodb_init.log import ensure_logging
from geodb_init.models.provision import ProvisionResult
from geodb_init.routes.provision import router as provision_router
from geodb_init.services.dependencies import get_provision_service
from geodb_init.services.provision_service import ProvisionServiceError


logger = logging.getLogger(__name__)


def _provision_on_startup() -> bool:
    return os.getenv("PROVISION_ON_STARTUP", "").strip().lower() in {"1", "true", "yes"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_logging()
    if _provision_on_startup():
        logger.info("PROVISION_ON_STARTUP set: provisioning database before serving")
        await get_provision_service().run_or_raise()
    yield


app = FastAPI(lifespan=lifespan)

app.include_router(provision_router)


@app.exception_handler(ProvisionServiceError)
async def provision_service_error_handler(request: Request, exc: ProvisionServiceError) -> JSONResponse:
    """Map provisioning failures to the generic failure result.

    Details stay in the logs; callers only ever see the status and the short message.

    Returns:
        500 Internal Server Error with a JSON body: {"status": 500, "message": "..."}
    """
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ProvisionResult.failed().model_dump(),
    )


@app.get("/")
async def root():
    return {"message": "geodb-init is running."}
