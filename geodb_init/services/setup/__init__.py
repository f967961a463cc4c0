"""Setup (provisioning) services.

This package contains orchestration helpers that *provision* external
infrastructure the geodata stack depends on (the PostGIS database, its schema,
roles and extensions).
"""
