"""
Data records shared by the probe client, caches and status aggregation.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class NodeStatus(str, Enum):
    ONLINE = 'online'
    OFFLINE = 'offline'
    ERROR = 'error'
    UNKNOWN = 'unknown'


class NetworkStatus(str, Enum):
    OPERATIONAL = 'operational'
    DEGRADED = 'degraded'
    MAJOR_OUTAGE = 'major-outage'
    OUTAGE = 'outage'


class NodeFilterType(str, Enum):
    ALL = 'all'
    CANONICAL = 'canonical'
    COMMUNITY = 'community'


def _first(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass(frozen=True)
class Node:
    """A registry entry. Owned by the registry collaborator and never mutated here."""

    node_id: int
    http_address: str
    is_canonical: bool = False
    owner: str = ''
    signer: str = ''
    signing_public_key: str = ''

    @property
    def display_name(self) -> str:
        return f"Node #{self.node_id}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Node':
        """
        Build a node from a registry record.

        Accepts both the registry's camelCase keys and snake_case keys.

        Raises:
            ValueError: If the node id is missing or not an integer
        """
        node_id = _first(data, 'nodeId', 'node_id', 'id')
        if node_id is None:
            raise ValueError("Node record has no node id")

        is_canonical = _first(data, 'isCanonical', 'is_canonical', default=False)
        if isinstance(is_canonical, str):
            is_canonical = is_canonical.strip().lower() == 'true'

        return cls(
            node_id=int(node_id),
            http_address=str(_first(data, 'httpAddress', 'http_address', 'httpEndpoint', default='')),
            is_canonical=bool(is_canonical),
            owner=str(_first(data, 'owner', default='')),
            signer=str(_first(data, 'signer', default='')),
            signing_public_key=str(_first(data, 'signingPublicKey', 'signing_public_key', default='')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'nodeId': self.node_id,
            'name': self.display_name,
            'httpAddress': self.http_address,
            'isCanonical': self.is_canonical,
            'owner': self.owner,
            'signer': self.signer,
            'signingPublicKey': self.signing_public_key,
        }


@dataclass(frozen=True)
class HealthResult:
    """Outcome of one probe attempt. Replaced wholesale on every write."""

    node_id: int
    http_address: str
    status: NodeStatus
    last_checked: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    version: Optional[str] = None
    latency_ms: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'nodeId': self.node_id,
            'httpAddress': self.http_address,
            'status': self.status.value,
            'version': self.version,
            'latencyMs': self.latency_ms,
            'lastChecked': self.last_checked.isoformat(),
            'error': self.error,
        }


@dataclass(frozen=True)
class NodeMetadata:
    """NFT metadata published behind a node's token URI."""

    description: str
    image: Optional[str] = None
    external_url: Optional[str] = None
    operator_name: Optional[str] = None
    region: Optional[str] = None
    social: Optional[Dict[str, str]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NodeMetadata':
        return cls(
            description=data['description'],
            image=data.get('image'),
            external_url=data.get('external_url'),
            operator_name=data.get('operator_name'),
            region=data.get('region'),
            social=data.get('social'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'description': self.description,
            'image': self.image,
            'external_url': self.external_url,
            'operator_name': self.operator_name,
            'region': self.region,
            'social': self.social,
        }


@dataclass(frozen=True)
class NetworkStatusInfo:
    """Network-wide status derived from the node set and the status cache."""

    status: NetworkStatus
    canonical_online: int
    canonical_total: int
    community_online: int
    community_total: int
    average_latency_ms: Optional[int] = None
    last_checked: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status.value,
            'canonicalOnline': self.canonical_online,
            'canonicalTotal': self.canonical_total,
            'communityOnline': self.community_online,
            'communityTotal': self.community_total,
            'averageLatencyMs': self.average_latency_ms,
            'lastChecked': self.last_checked.isoformat() if self.last_checked else None,
        }
