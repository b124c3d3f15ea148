"""
Manage module for Keyhold Server - access control and secret versions.

This module handles:
- Memberships and access grants (AccessControlManager)
- Secret series and their content versions (SecretVersionManager)
- Sanitized secret views for authorized callers

The two managers do not depend on each other. Every operation runs in a
single database transaction acquired for the duration of the call.
"""

from .access_control import AccessControlManager
from .secret_versions import SecretVersionManager

__all__ = [
    "AccessControlManager",
    "SecretVersionManager",
]
