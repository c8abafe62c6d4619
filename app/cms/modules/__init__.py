"""
Content modules live under this package.

Each module owns its models, service functions and admin API blueprint,
and reuses the platform primitives (admin sessions, RBAC, audit, storage, DB session).
"""
