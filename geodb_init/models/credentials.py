from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr, ValidationError


class CredentialBundle(BaseModel):
    """One account's connection parameters as stored in Secrets Manager.

    RDS-managed master secrets name the database `dbname`; the generated role
    secrets use `database`. Both are accepted. Extra keys (`engine`, ...) are ignored.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    username: str = Field(..., min_length=1)
    password: SecretStr
    host: str = Field(..., min_length=1)
    port: int = 5432
    database: Optional[str] = Field(default=None, validation_alias=AliasChoices("database", "dbname"))

    @staticmethod
    def from_secret_string(raw: Optional[str]) -> "CredentialBundle":
        if not raw:
            raise ValueError("Secret has no SecretString payload")
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            # Do not chain the decode error: its message can echo the secret text.
            raise ValueError("Secret payload is not valid JSON") from None
        if not isinstance(payload, dict):
            raise ValueError("Secret payload must be a JSON object")

        try:
            return CredentialBundle.model_validate(payload)
        except ValidationError as exc:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
            raise ValueError(f"Secret payload is missing or has invalid fields: {', '.join(fields)}") from None


@dataclass(frozen=True)
class CredentialBundles:
    master: CredentialBundle
    read: CredentialBundle
    write: CredentialBundle
    admin: CredentialBundle
