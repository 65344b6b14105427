"""
Permission management feature module.

Implements organization-scoped role-based access control over a flat catalog
of named permissions.
"""
