from __future__ import annotations

import logging

from botocore.exceptions import BotoCoreError

from geodb_init.services.config import DatabaseTlsConfig, ProvisionConfig, SecretsConfig
from geodb_init.services.postgres_service import PostgresService
from geodb_init.services.provision_service import ProvisionService, ProvisionServiceError
from geodb_init.services.secrets_service import SecretsService
from geodb_init.services.setup.database_setup_service import DatabaseSetupService


logger = logging.getLogger(__name__)


def get_secrets_service() -> SecretsService:
    """Dependency provider for a SecretsService instance."""

    return SecretsService(SecretsConfig.from_env())


def get_postgres_service() -> PostgresService:
    return PostgresService(DatabaseTlsConfig.from_env())


def get_provision_service() -> ProvisionService:
    """Dependency provider for the provisioning service.

    Configuration is read from the environment on every call. A missing or
    invalid variable, or an AWS session that cannot be built (e.g. an unknown
    AWS_PROFILE), surfaces as ProvisionServiceError before any AWS or database
    call is made.
    """

    try:
        config = ProvisionConfig.from_env()
        postgres = get_postgres_service()
        secrets = get_secrets_service()
    except (ValueError, BotoCoreError) as exc:
        logger.exception("Invalid provisioning configuration")
        raise ProvisionServiceError("Invalid provisioning configuration") from exc

    return ProvisionService(
        config=config,
        secrets=secrets,
        setup=DatabaseSetupService(postgres=postgres, config=config),
    )
