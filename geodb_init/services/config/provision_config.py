from __future__ import annotations

import os
from dataclasses import dataclass
from typing import ClassVar


def _required(name: str) -> str:
    value = (os.getenv(name) or "").strip()
    if not value:
        raise ValueError(f"Missing required environment variable: {name}")
    return value


def _split_names(raw: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class ProvisionConfig:
    """Parameters for one provisioning run.

    Secret ids may be names or ARNs; they are only ever passed to Secrets Manager.
    Database, schema and role names are quoted as identifiers when composed into SQL.

    List settings (`DB_EXTENSIONS`, `DB_OWNERSHIP_SCHEMAS`) follow one rule: unset
    means the defaults, set but empty means none.
    """

    db_name: str
    schema_name: str
    master_secret_id: str
    read_secret_id: str
    write_secret_id: str
    admin_secret_id: str
    maintenance_db: str = "postgres"
    admin_group_role: str = "rds_superuser"
    DEFAULT_EXTENSIONS: ClassVar[tuple[str, ...]] = (
        "postgis",
        "postgis_raster",
        "fuzzystrmatch",
        "postgis_topology",
        "hstore",
    )
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    ownership_schemas: tuple[str, ...] = ("topology",)
    _DEFAULT_TIMEOUT_SECONDS: ClassVar[float] = 60.0
    timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        for field_name in ("db_name", "schema_name", "maintenance_db"):
            if not getattr(self, field_name).strip():
                raise ValueError(f"{field_name} must be provided")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

    @staticmethod
    def from_env() -> "ProvisionConfig":
        timeout_raw = os.getenv("PROVISION_TIMEOUT_SECONDS")
        timeout_seconds = ProvisionConfig._DEFAULT_TIMEOUT_SECONDS
        if timeout_raw:
            try:
                timeout_seconds = float(timeout_raw)
            except ValueError as exc:
                raise ValueError("Invalid PROVISION_TIMEOUT_SECONDS; must be a number") from exc

        extensions_raw = os.getenv("DB_EXTENSIONS")
        extensions = _split_names(extensions_raw) if extensions_raw is not None else ProvisionConfig.DEFAULT_EXTENSIONS

        ownership_raw = os.getenv("DB_OWNERSHIP_SCHEMAS")
        ownership_schemas = _split_names(ownership_raw) if ownership_raw is not None else ("topology",)

        return ProvisionConfig(
            db_name=_required("DB_NAME"),
            schema_name=_required("SCHEMA_NAME"),
            master_secret_id=_required("MASTER_SECRET_NAME"),
            read_secret_id=_required("DB_READ_SECRET_NAME"),
            write_secret_id=_required("DB_APP_SECRET_NAME"),
            admin_secret_id=_required("DB_GISADMIN_SECRET_NAME"),
            maintenance_db=os.getenv("DB_MAINTENANCE_NAME", "").strip() or "postgres",
            # An explicitly empty value means "no managed admin group" (plain PostgreSQL).
            admin_group_role=os.getenv("DB_ADMIN_GROUP_ROLE", "rds_superuser").strip(),
            extensions=extensions,
            ownership_schemas=ownership_schemas,
            timeout_seconds=timeout_seconds,
        )
