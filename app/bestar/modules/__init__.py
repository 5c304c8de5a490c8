"""
Admin feature modules live under this package.

Each module maps onto one AdminModule (see app.bestar.permissions) and owns its
models, service functions and /api/admin endpoints, while reusing platform
primitives (auth, RBAC, audit, mail, DB session).
"""
