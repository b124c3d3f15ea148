"""
Keyhold Server - access control and versioned secrets for a secret store.

This package implements the core of a secret-management service:
- Clients enrolled in Groups (memberships)
- Groups granted access to Secrets (access grants)
- Secrets as a named series of immutable, encrypted content versions
- Sanitized (ciphertext-free) secret views for authorized callers

Architecture:
    ┌──────────────────────┐     ┌──────────────────────┐
    │ AccessControlManager │     │ SecretVersionManager │
    └──────────┬───────────┘     └──────────┬───────────┘
               │   one Transaction per call  │
               ▼                             ▼
    ┌─────────────────────────────────────────────────┐
    │ ClientStore  GroupStore  SecretSeriesStore       │
    │ SecretContentStore                               │
    └────────────────────────┬────────────────────────┘
                             ▼
                      ┌─────────────┐
                      │   SQLite    │
                      └─────────────┘

Invariants:
    - Check-then-write sequences run in one transaction
    - A secret series never exists without at least one version
    - Client-scoped single-secret lookups don't reveal whether a secret exists
    - Encryption happens outside this package; payloads are opaque strings

Version: see _version.py.
"""

from ._version import __version__

__all__ = ["__version__"]
