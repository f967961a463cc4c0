from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar


@dataclass(frozen=True)
class DatabaseTlsConfig:
    """Transport settings shared by every PostgreSQL connection.

    `root_cert_path` points at the RDS CA bundle (`global-bundle.pem`) packaged
    next to the function; with `sslmode=verify-full` the server certificate and
    host name are both checked against it.
    """

    root_cert_path: Path
    sslmode: str = "verify-full"
    _DEFAULT_CONNECT_TIMEOUT_SECONDS: ClassVar[int] = 10
    connect_timeout_seconds: int = _DEFAULT_CONNECT_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        # libpq treats 0 as "wait forever".
        if self.connect_timeout_seconds <= 0:
            raise ValueError("connect_timeout_seconds must be positive")

    @staticmethod
    def from_env() -> "DatabaseTlsConfig":
        root_cert_path = Path(os.getenv("DB_SSL_ROOT_CERT", "global-bundle.pem"))
        sslmode = os.getenv("DB_SSLMODE", "").strip() or "verify-full"

        timeout_raw = os.getenv("DB_CONNECT_TIMEOUT_SECONDS")
        connect_timeout_seconds = DatabaseTlsConfig._DEFAULT_CONNECT_TIMEOUT_SECONDS
        if timeout_raw:
            try:
                connect_timeout_seconds = int(timeout_raw)
            except ValueError as exc:
                raise ValueError("Invalid DB_CONNECT_TIMEOUT_SECONDS; must be an integer") from exc

        return DatabaseTlsConfig(
            root_cert_path=root_cert_path,
            sslmode=sslmode,
            connect_timeout_seconds=connect_timeout_seconds,
        )
