"""
Feature modules live under this package.

Each module owns its service, validator and admin routes, and reuses the
platform primitives (auth, RBAC, audit, unit of work, grid helpers).
"""
