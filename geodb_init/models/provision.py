from __future__ import annotations

from http import HTTPStatus
from typing import Any, ClassVar

from pydantic import BaseModel, Field


class ProvisionResult(BaseModel):
    status: int = Field(..., description="200 on success, 500 on failure")
    message: str

    SUCCESS_MESSAGE: ClassVar[str] = "Schema and user created successfully"
    FAILURE_MESSAGE: ClassVar[str] = "Error creating schema and user"

    @property
    def succeeded(self) -> bool:
        return self.status == HTTPStatus.OK

    @staticmethod
    def ok() -> "ProvisionResult":
        return ProvisionResult(status=int(HTTPStatus.OK), message=ProvisionResult.SUCCESS_MESSAGE)

    @staticmethod
    def failed() -> "ProvisionResult":
        return ProvisionResult(status=int(HTTPStatus.INTERNAL_SERVER_ERROR), message=ProvisionResult.FAILURE_MESSAGE)

    def to_lambda_response(self) -> dict[str, Any]:
        return {"statusCode": self.status, "body": self.message}
