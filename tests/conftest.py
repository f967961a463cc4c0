"""
Pytest configuration and shared fixtures.

- FakeCatalog / FakePostgres: in-memory stand-in for the PostgreSQL server,
  recording every statement per connection.
- FakeSecretsSession: stand-in for an aioboto3 session talking to Secrets Manager.
- bundles / provision_config: the geo_db scenario (roles read, write, gis_admin).
"""

import json
import re
from contextlib import asynccontextmanager
from pathlib import Path

import pytest

from geodb_init.models.credentials import CredentialBundle, CredentialBundles
from geodb_init.services.config import DatabaseTlsConfig, ProvisionConfig
from geodb_init.services.postgres_service import PostgresConnectionError, PostgresStatementError


def render(query) -> str:
    return query if isinstance(query, str) else query.as_string()


class FakeCatalog:
    """Server-side state shared by all fake connections."""

    def __init__(self):
        self.databases = {"postgres"}
        self.roles = {"postgres", "rds_superuser"}
        self.relations = {}
        self.fail_on = None
        self.refuse_connections = False

    def apply(self, statement: str) -> None:
        if self.fail_on and self.fail_on in statement:
            raise PostgresStatementError(f"injected failure on: {self.fail_on}")

        created_db = re.match(r'CREATE DATABASE "([^"]+)"', statement)
        if created_db:
            name = created_db.group(1)
            if name in self.databases:
                raise PostgresStatementError(f"database {name} already exists")
            self.databases.add(name)

        created_role = re.match(r'CREATE USER "([^"]+)"', statement)
        if created_role:
            name = created_role.group(1)
            if name in self.roles:
                raise PostgresStatementError(f"role {name} already exists")
            self.roles.add(name)


class FakeSession:
    def __init__(self, catalog: FakeCatalog, label: str):
        self._catalog = catalog
        self.label = label
        self.statements = []

    async def execute(self, statement, params=None):
        text = render(statement)
        self._catalog.apply(text)
        self.statements.append(text)

    async def exists(self, query, params=None):
        text = render(query)
        self.statements.append(text)
        if "pg_database" in text:
            return params[0] in self._catalog.databases
        if "pg_roles" in text:
            return params[0] in self._catalog.roles
        raise AssertionError(f"unexpected existence query: {text}")

    async def fetch_all(self, query, params=None):
        self.statements.append(render(query))
        return list(self._catalog.relations.get(params[0], []))


class FakePostgres:
    def __init__(self, catalog: FakeCatalog):
        self.catalog = catalog
        self.sessions = []
        self.events = []

    @asynccontextmanager
    async def connect(self, *, bundle, dbname):
        if self.catalog.refuse_connections:
            raise PostgresConnectionError(f"Failed to connect to {dbname}")
        session = FakeSession(self.catalog, f"{bundle.username}/{dbname}")
        self.sessions.append(session)
        self.events.append(("open", session.label))
        try:
            yield session
        finally:
            self.events.append(("close", session.label))

    @property
    def statements(self):
        return [s for session in self.sessions for s in session.statements]


class SecretNotFound(Exception):
    pass


class FakeSecretsClient:
    def __init__(self, session):
        self._session = session

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def get_secret_value(self, *, SecretId):
        self._session.calls.append(SecretId)
        if SecretId not in self._session.secrets:
            raise SecretNotFound(f"Secrets Manager can't find the specified secret: {SecretId}")
        return {"ARN": f"arn:aws:secretsmanager:eu-west-2:000000000000:secret:{SecretId}", "SecretString": self._session.secrets[SecretId]}


class FakeSecretsSession:
    def __init__(self, secrets):
        self.secrets = dict(secrets)
        self.calls = []
        self.client_kwargs = []

    def client(self, service_name, **kwargs):
        assert service_name == "secretsmanager"
        self.client_kwargs.append(kwargs)
        return FakeSecretsClient(self)


def _secret(username: str, password: str, **extra) -> str:
    payload = {"username": username, "password": password, "host": "geo.abc123.eu-west-2.rds.amazonaws.com", "port": "5432"}
    payload.update(extra)
    return json.dumps(payload)


@pytest.fixture
def secret_strings() -> dict:
    return {
        "geo/master": _secret("postgres", "master-pw", dbname="geo_db", engine="postgres"),
        "geo/read": _secret("read", "read-pw", database="geo_db"),
        "geo/app": _secret("write", "write-pw", database="geo_db"),
        "geo/gisadmin": _secret("gis_admin", "admin-pw", database="geo_db"),
    }


@pytest.fixture
def secrets_session(secret_strings) -> FakeSecretsSession:
    return FakeSecretsSession(secret_strings)


@pytest.fixture
def provision_config() -> ProvisionConfig:
    return ProvisionConfig(
        db_name="geo_db",
        schema_name="geo",
        master_secret_id="geo/master",
        read_secret_id="geo/read",
        write_secret_id="geo/app",
        admin_secret_id="geo/gisadmin",
    )


@pytest.fixture
def bundles(secret_strings) -> CredentialBundles:
    return CredentialBundles(
        master=CredentialBundle.from_secret_string(secret_strings["geo/master"]),
        read=CredentialBundle.from_secret_string(secret_strings["geo/read"]),
        write=CredentialBundle.from_secret_string(secret_strings["geo/app"]),
        admin=CredentialBundle.from_secret_string(secret_strings["geo/gisadmin"]),
    )


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def fake_postgres(catalog) -> FakePostgres:
    return FakePostgres(catalog)


@pytest.fixture
def tls_config(tmp_path: Path) -> DatabaseTlsConfig:
    return DatabaseTlsConfig(root_cert_path=tmp_path / "global-bundle.pem")


@pytest.fixture
def provision_env(monkeypatch):
    """Environment as wired by the deployment stack."""
    values = {
        "DB_NAME": "geo_db",
        "SCHEMA_NAME": "geo",
        "MASTER_SECRET_NAME": "geo/master",
        "DB_READ_SECRET_NAME": "geo/read",
        "DB_APP_SECRET_NAME": "geo/app",
        "DB_GISADMIN_SECRET_NAME": "geo/gisadmin",
    }
    for key, value in values.items():
        monkeypatch.setenv(key, value)
    for key in (
        "DB_MAINTENANCE_NAME",
        "DB_ADMIN_GROUP_ROLE",
        "DB_EXTENSIONS",
        "DB_OWNERSHIP_SCHEMAS",
        "PROVISION_TIMEOUT_SECONDS",
    ):
        monkeypatch.delenv(key, raising=False)
    return values
