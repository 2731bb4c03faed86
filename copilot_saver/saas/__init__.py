"""Multi-tenant layer — tenant identity, credentials, and liveness checks."""

from copilot_saver.saas.tenant import Tenant, TenantIdentity

__all__ = [
    "Tenant",
    "TenantIdentity",
]
