"""Unit tests for credential bundles and provisioning results."""

import json

import pytest

from geodb_init.models.credentials import CredentialBundle
from geodb_init.models.provision import ProvisionResult


class TestCredentialBundle:
    def test_parses_rds_master_secret(self):
        raw = json.dumps(
            {
                "username": "postgres",
                "password": "s3cr3t",
                "engine": "postgres",
                "host": "geo.abc123.eu-west-2.rds.amazonaws.com",
                "port": 5432,
                "dbname": "geo_db",
                "dbInstanceIdentifier": "geo",
            }
        )

        bundle = CredentialBundle.from_secret_string(raw)

        assert bundle.username == "postgres"
        assert bundle.password.get_secret_value() == "s3cr3t"
        assert bundle.port == 5432
        assert bundle.database == "geo_db"

    def test_coerces_string_port_and_database_key(self):
        raw = json.dumps({"username": "read", "password": "pw", "host": "h", "port": "6543", "database": "geo_db"})

        bundle = CredentialBundle.from_secret_string(raw)

        assert bundle.port == 6543
        assert bundle.database == "geo_db"

    def test_password_not_rendered(self):
        bundle = CredentialBundle.from_secret_string(json.dumps({"username": "read", "password": "hunter2", "host": "h"}))

        assert "hunter2" not in repr(bundle)
        assert "hunter2" not in str(bundle)

    def test_missing_fields_named_without_values(self):
        with pytest.raises(ValueError) as exc_info:
            CredentialBundle.from_secret_string(json.dumps({"username": "read", "password": "hunter2"}))

        assert "host" in str(exc_info.value)
        assert "hunter2" not in str(exc_info.value)

    @pytest.mark.parametrize("raw", [None, "", "not json", "[1, 2]"])
    def test_rejects_bad_payloads(self, raw):
        with pytest.raises(ValueError):
            CredentialBundle.from_secret_string(raw)


class TestProvisionResult:
    def test_ok(self):
        result = ProvisionResult.ok()

        assert result.succeeded
        assert result.to_lambda_response() == {"statusCode": 200, "body": "Schema and user created successfully"}

    def test_failed(self):
        result = ProvisionResult.failed()

        assert not result.succeeded
        assert result.to_lambda_response() == {"statusCode": 500, "body": "Error creating schema and user"}
