"""
Typed view of the Terraform custom resources returned by the API server.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict

from .config import LABEL_KEEP


def parse_timestamp(value: str) -> datetime:
    """Parse a Kubernetes RFC 3339 timestamp into an aware UTC datetime."""
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))

    # Ensure the timestamp is timezone-aware
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class TerraformResource:
    name: str
    namespace: str
    creation_timestamp: datetime
    labels: Dict[str, str] = field(default_factory=dict)

    @property
    def keep(self) -> bool:
        return bool(self.labels.get(LABEL_KEEP))

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> 'TerraformResource':
        """Build a resource from a custom object as returned by CustomObjectsApi.

        Raises ValueError when the object has no name or no usable creation timestamp.
        """
        metadata = obj.get('metadata') or {}
        name = metadata.get('name')
        if not name:
            raise ValueError('resource has no metadata.name')

        created = metadata.get('creationTimestamp')
        if not created:
            raise ValueError(f'resource {name} has no metadata.creationTimestamp')
        if isinstance(created, datetime):
            # The client may already have deserialized the timestamp
            creation_timestamp = created if created.tzinfo else created.replace(tzinfo=timezone.utc)
        else:
            creation_timestamp = parse_timestamp(str(created))

        return cls(
            name=name,
            namespace=metadata.get('namespace', ''),
            creation_timestamp=creation_timestamp,
            labels=dict(metadata.get('labels') or {}),
        )
