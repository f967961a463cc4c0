from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SecretsConfig:
    region_name: Optional[str] = None
    endpoint_url: Optional[str] = None

    @staticmethod
    def from_env() -> "SecretsConfig":
        region_name = os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION")
        endpoint_url = os.getenv("SECRETS_MANAGER_ENDPOINT_URL")

        return SecretsConfig(region_name=region_name, endpoint_url=endpoint_url)
