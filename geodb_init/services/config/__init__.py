"""Configuration package (Facade).

Re-exports the public config types so callers import from a single, stable path:

	from geodb_init.services.config import ProvisionConfig

Each type is a frozen dataclass built once from the environment by the caller
(Lambda handler or FastAPI dependency) and passed explicitly into the services.
"""

from geodb_init.services.config.database_tls_config import DatabaseTlsConfig
from geodb_init.services.config.provision_config import ProvisionConfig
from geodb_init.services.config.secrets_config import SecretsConfig

__all__ = ["DatabaseTlsConfig", "ProvisionConfig", "SecretsConfig"]
