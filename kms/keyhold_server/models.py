"""
Data model for Keyhold Server.

Clients and groups form the membership side of the authorization graph;
secret series and their content versions form the secret side. Access
grants connect groups to secret series.

A SanitizedSecret is the disclosure-safe view handed to authorized
callers: series and content metadata, never the encrypted payload.

Invariants:
    - All model objects are immutable
    - Map-valued fields (metadata, generation options) never take part in
      equality or hashing
    - SanitizedSecret equality is keyed by (id, version)
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Client:
    """An identity allowed to authenticate to the system.

    Attributes:
        id: Client identifier
        name: Unique client name
        description: Free-form description
        created_at: Creation timestamp (Unix ms)
        created_by: Creator
        updated_at: Last update timestamp (Unix ms)
        updated_by: Last updater
        enabled: Whether the client may authenticate
        automation_allowed: Whether the client may use automation endpoints
    """

    id: int
    name: str
    description: str
    created_at: int
    created_by: str
    updated_at: int
    updated_by: str
    enabled: bool = True
    automation_allowed: bool = False


@dataclass(frozen=True)
class Group:
    """A named collection of clients granted access to secrets."""

    id: int
    name: str
    description: str
    created_at: int
    created_by: str
    updated_at: int
    updated_by: str


@dataclass(frozen=True)
class SecretSeries:
    """The durable, named identity of a secret.

    Attributes:
        id: Series identifier
        name: Globally unique secret name
        description: Free-form description
        created_at: Creation timestamp (Unix ms)
        created_by: Creator
        updated_at: Last update timestamp (Unix ms)
        updated_by: Last updater
        type: Optional type tag
        generation_options: Opaque options used to generate the secret
    """

    id: int
    name: str
    description: str
    created_at: int
    created_by: str
    updated_at: int
    updated_by: str
    type: str | None = None
    generation_options: dict[str, str] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class SecretContent:
    """One immutable version of a secret's encrypted payload.

    An empty version string denotes the unversioned default.
    """

    id: int
    secret_series_id: int
    encrypted_content: str
    version: str
    created_at: int
    created_by: str
    updated_at: int
    updated_by: str
    metadata: dict[str, str] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class SecretSeriesAndContent:
    """A series together with one of its content versions."""

    series: SecretSeries
    content: SecretContent


# Separates a secret name from its version in display names.
VERSION_DELIMITER = ".."


@dataclass(frozen=True)
class SanitizedSecret:
    """Secret metadata safe to disclose to an authorized caller.

    Carries everything about a series and one of its versions except the
    encrypted payload. Two sanitized secrets are equal when they describe
    the same version of the same series.
    """

    id: int
    name: str
    version: str
    description: str = field(compare=False)
    created_at: int = field(compare=False)
    created_by: str = field(compare=False)
    updated_at: int = field(compare=False)
    updated_by: str = field(compare=False)
    metadata: dict[str, str] = field(default_factory=dict, compare=False)
    type: str | None = field(default=None, compare=False)
    generation_options: dict[str, str] = field(default_factory=dict, compare=False)

    @classmethod
    def from_series_and_content(cls, pair: SecretSeriesAndContent) -> SanitizedSecret:
        """Build a sanitized view, dropping the encrypted payload."""
        series, content = pair.series, pair.content
        return cls(
            id=series.id,
            name=series.name,
            version=content.version,
            description=series.description,
            created_at=content.created_at,
            created_by=content.created_by,
            updated_at=content.updated_at,
            updated_by=content.updated_by,
            metadata=dict(content.metadata),
            type=series.type,
            generation_options=dict(series.generation_options),
        )

    def display_name(self) -> str:
        """Name suffixed with the version, or the bare name if unversioned."""
        if not self.version:
            return self.name
        return f"{self.name}{VERSION_DELIMITER}{self.version}"
