from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import aioboto3

from geodb_init.models.credentials import CredentialBundle, CredentialBundles
from geodb_init.services.config import ProvisionConfig, SecretsConfig


logger = logging.getLogger(__name__)


class SecretsServiceError(RuntimeError):
    pass


class SecretsService:
    """Read-only access to the credential bundles in AWS Secrets Manager.

    Nothing is cached: every call goes back to Secrets Manager so rotated
    credentials are picked up on the next run.
    """

    def __init__(self, config: SecretsConfig, *, session: Optional[Any] = None) -> None:
        self._config = config
        self._session = session or aioboto3.Session()

    def _client(self) -> Any:
        return self._session.client(
            "secretsmanager",
            region_name=self._config.region_name,
            endpoint_url=self._config.endpoint_url,
        )

    async def get_bundle(self, *, secret_id: str) -> CredentialBundle:
        if not secret_id:
            raise SecretsServiceError("'secret_id' must be provided")

        try:
            client: Any = self._client()
            async with client as secretsmanager:
                response = await secretsmanager.get_secret_value(SecretId=secret_id)
        except Exception as exc:
            logger.exception("Secrets Manager get_secret_value failed (secret_id=%s)", secret_id)
            raise SecretsServiceError(f"Failed to read secret: {secret_id}") from exc

        try:
            return CredentialBundle.from_secret_string(response.get("SecretString"))
        except ValueError as exc:
            raise SecretsServiceError(f"Invalid credential bundle in secret {secret_id}: {exc}") from exc

    async def get_bundles(self, config: ProvisionConfig) -> CredentialBundles:
        """Resolve the master, read, write and admin bundles.

        The four lookups are independent and run concurrently. If any of them
        fails the error propagates once all have settled, so the caller never
        sees a partial set.
        """

        logger.info(
            "Resolving credential bundles (master=%s, read=%s, write=%s, admin=%s)",
            config.master_secret_id,
            config.read_secret_id,
            config.write_secret_id,
            config.admin_secret_id,
        )
        results = await asyncio.gather(
            self.get_bundle(secret_id=config.master_secret_id),
            self.get_bundle(secret_id=config.read_secret_id),
            self.get_bundle(secret_id=config.write_secret_id),
            self.get_bundle(secret_id=config.admin_secret_id),
            return_exceptions=True,
        )

        for result in results:
            if isinstance(result, BaseException):
                raise result

        master, read, write, admin = results
        return CredentialBundles(master=master, read=read, write=write, admin=admin)
