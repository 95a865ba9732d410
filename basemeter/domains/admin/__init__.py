"""Admin domain: token-gated operator actions."""

from basemeter.domains.admin.service import AdminService

__all__ = ["AdminService"]
