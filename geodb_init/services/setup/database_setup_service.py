from __future__ import annotations

import logging

from psycopg import sql

from geodb_init.models.credentials import CredentialBundle, CredentialBundles
from geodb_init.services.config import ProvisionConfig
from geodb_init.services.postgres_service import PostgresService, PostgresSession


logger = logging.getLogger(__name__)


class DatabaseSetupService:
    """Brings the geodata database to its provisioned state.

    The sequence is fixed and every step is safe to repeat:

    - as master on the maintenance database: create the target database if missing;
    - as master on the target database: schema and search_path, the write, read
      and admin roles (created only if missing, grants reapplied on every run),
      then default privileges so tables created by the write role are readable by
      the read role;
    - as the admin role: spatial extensions and ownership of the extension-owned
      schemas (`topology`).

    Errors propagate unchanged. Steps already applied are not undone.
    """

    _DATABASE_EXISTS = "SELECT 1 FROM pg_database WHERE datname = %s"
    _ROLE_EXISTS = "SELECT 1 FROM pg_catalog.pg_roles WHERE rolname = %s"
    # Sequences last: once a table has moved, its owned sequences have moved with it.
    _OWNED_RELATIONS = (
        "SELECT n.nspname, c.relname "
        "FROM pg_class c JOIN pg_namespace n ON c.relnamespace = n.oid "
        "WHERE n.nspname = %s AND c.relkind IN ('r', 'S', 'v') "
        "ORDER BY c.relkind = 'S', c.relname"
    )

    def __init__(self, *, postgres: PostgresService, config: ProvisionConfig) -> None:
        self._postgres = postgres
        self._config = config

    async def setup_database(self, bundles: CredentialBundles) -> None:
        """Public entry point: run the whole provisioning sequence once."""

        cfg = self._config

        async with self._postgres.connect(bundle=bundles.master, dbname=cfg.maintenance_db) as admin_db:
            await self._setup_target_database(admin_db)

        async with self._postgres.connect(bundle=bundles.master, dbname=cfg.db_name) as db:
            await self._setup_schema(db)
            await self._setup_write_role(db, write=bundles.write)
            await self._setup_read_role(db, read=bundles.read)
            await self._setup_admin_role(db, admin=bundles.admin)
            await self._setup_default_privileges(db, master=bundles.master, write=bundles.write, read=bundles.read)

        async with self._postgres.connect(bundle=bundles.admin, dbname=cfg.db_name) as gis:
            await self._setup_extensions(gis)
            await self._setup_ownership(gis, admin=bundles.admin)

        logger.info("Database %s provisioned (schema=%s)", cfg.db_name, cfg.schema_name)

    # -----------------
    # Private helpers
    # -----------------

    async def _setup_target_database(self, session: PostgresSession) -> None:
        db_name = self._config.db_name
        if await session.exists(self._DATABASE_EXISTS, (db_name,)):
            logger.info("Database already exists: %s", db_name)
            return

        await session.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(db_name)))
        logger.info("Created database: %s", db_name)

    async def _setup_schema(self, session: PostgresSession) -> None:
        schema = sql.Identifier(self._config.schema_name)
        await session.execute(sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(schema))
        await session.execute(
            sql.SQL("ALTER DATABASE {} SET search_path TO {}, public").format(
                sql.Identifier(self._config.db_name),
                schema,
            )
        )
        logger.info("Schema ensured: %s (search_path=%s, public)", self._config.schema_name, self._config.schema_name)

    async def _ensure_role(self, session: PostgresSession, *, bundle: CredentialBundle) -> None:
        if await session.exists(self._ROLE_EXISTS, (bundle.username,)):
            logger.info("Role already exists: %s", bundle.username)
            return

        # PostgreSQL does not accept bind parameters in CREATE USER; the password goes in as a quoted literal.
        await session.execute(
            sql.SQL("CREATE USER {} WITH ENCRYPTED PASSWORD {}").format(
                sql.Identifier(bundle.username),
                sql.Literal(bundle.password.get_secret_value()),
            )
        )
        logger.info("Created role: %s", bundle.username)

    async def _setup_write_role(self, session: PostgresSession, *, write: CredentialBundle) -> None:
        await self._ensure_role(session, bundle=write)

        role = sql.Identifier(write.username)
        db = sql.Identifier(self._config.db_name)
        schema = sql.Identifier(self._config.schema_name)
        for statement in (
            sql.SQL("GRANT CONNECT ON DATABASE {} TO {}").format(db, role),
            sql.SQL("GRANT USAGE ON SCHEMA {} TO {}").format(schema, role),
            sql.SQL("GRANT CREATE ON SCHEMA {} TO {}").format(schema, role),
            sql.SQL("ALTER DEFAULT PRIVILEGES IN SCHEMA {} GRANT INSERT, UPDATE, DELETE ON TABLES TO {}").format(
                schema, role
            ),
        ):
            await session.execute(statement)
        logger.info("Write grants applied: %s", write.username)

    async def _setup_read_role(self, session: PostgresSession, *, read: CredentialBundle) -> None:
        await self._ensure_role(session, bundle=read)

        role = sql.Identifier(read.username)
        db = sql.Identifier(self._config.db_name)
        schema = sql.Identifier(self._config.schema_name)
        for statement in (
            sql.SQL("GRANT CONNECT ON DATABASE {} TO {}").format(db, role),
            sql.SQL("GRANT USAGE ON SCHEMA {} TO {}").format(schema, role),
            sql.SQL("GRANT SELECT ON ALL TABLES IN SCHEMA {} TO {}").format(schema, role),
            sql.SQL("ALTER DEFAULT PRIVILEGES IN SCHEMA {} GRANT SELECT ON TABLES TO {}").format(schema, role),
        ):
            await session.execute(statement)
        logger.info("Read grants applied: %s", read.username)

    async def _setup_admin_role(self, session: PostgresSession, *, admin: CredentialBundle) -> None:
        await self._ensure_role(session, bundle=admin)

        role = sql.Identifier(admin.username)
        db = sql.Identifier(self._config.db_name)
        schema = sql.Identifier(self._config.schema_name)
        statements = [
            sql.SQL("GRANT CONNECT ON DATABASE {} TO {}").format(db, role),
            sql.SQL("GRANT USAGE ON SCHEMA {} TO {}").format(schema, role),
            sql.SQL("GRANT USAGE ON SCHEMA public TO {}").format(role),
            sql.SQL("GRANT SELECT ON ALL TABLES IN SCHEMA {} TO {}").format(schema, role),
        ]
        if self._config.admin_group_role:
            statements.append(sql.SQL("GRANT {} TO {}").format(sql.Identifier(self._config.admin_group_role), role))
        statements.append(sql.SQL("GRANT ALL PRIVILEGES ON DATABASE {} TO {}").format(db, role))

        for statement in statements:
            await session.execute(statement)
        logger.info("Admin grants applied: %s", admin.username)

    async def _setup_default_privileges(
        self,
        session: PostgresSession,
        *,
        master: CredentialBundle,
        write: CredentialBundle,
        read: CredentialBundle,
    ) -> None:
        # Master must be a member of the write role to alter default privileges on its behalf.
        await session.execute(
            sql.SQL("GRANT {} TO {}").format(sql.Identifier(write.username), sql.Identifier(master.username))
        )
        await session.execute(
            sql.SQL("ALTER DEFAULT PRIVILEGES FOR USER {} IN SCHEMA {} GRANT SELECT ON TABLES TO {}").format(
                sql.Identifier(write.username),
                sql.Identifier(self._config.schema_name),
                sql.Identifier(read.username),
            )
        )
        logger.info("Tables created by %s will be readable by %s", write.username, read.username)

    async def _setup_extensions(self, session: PostgresSession) -> None:
        for extension in self._config.extensions:
            await session.execute(sql.SQL("CREATE EXTENSION IF NOT EXISTS {}").format(sql.Identifier(extension)))
        logger.info("Extensions ensured: %s", ", ".join(self._config.extensions))

    async def _setup_ownership(self, session: PostgresSession, *, admin: CredentialBundle) -> None:
        owner = sql.Identifier(admin.username)
        for schema_name in self._config.ownership_schemas:
            await session.execute(sql.SQL("ALTER SCHEMA {} OWNER TO {}").format(sql.Identifier(schema_name), owner))

            rows = await session.fetch_all(self._OWNED_RELATIONS, (schema_name,))
            for nspname, relname in rows:
                await session.execute(
                    sql.SQL("ALTER TABLE {} OWNER TO {}").format(sql.Identifier(nspname, relname), owner)
                )
            logger.info("Ownership of %s (%d relations) transferred to %s", schema_name, len(rows), admin.username)
