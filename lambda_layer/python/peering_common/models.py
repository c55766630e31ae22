# lambda_layer/python/peering_common/models.py
"""
Plain dataclass models for the peering handlers.
All of them are request-scoped; nothing here is persisted.
"""
import ipaddress
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from peering_common.envelope import CustomResourceRequest
from peering_common.errors import InvalidRequestError
from peering_common.identity import is_peering_connection_id

# Peering states in which the connection is gone or can never become active
TERMINAL_PEERING_STATES = frozenset({"deleted", "deleting", "rejected", "failed", "expired"})


def _require_role_arn(value: str, name: str) -> str:
    if not value.startswith("arn:") or ":role/" not in value:
        raise InvalidRequestError(f"{name} must be an IAM role ARN, got '{value}'.")
    return value


def _require_connection_id(value: str, name: str) -> str:
    if not is_peering_connection_id(value):
        raise InvalidRequestError(f"{name} must be a VPC peering connection id, got '{value}'.")
    return value


@dataclass(frozen=True)
class PeeringRequest:
    """The pair of VPCs to connect, as given to the create/accept handler."""
    local_vpc_id: str
    peer_vpc_id: str
    peer_owner_id: str
    peer_region: str
    peer_role_arn: str
    name: str
    env_name: str

    @classmethod
    def from_request(cls, request: CustomResourceRequest, default_region: str) -> "PeeringRequest":
        peer_owner_id = request.require("PeerOwnerId")
        if not (peer_owner_id.isdigit() and len(peer_owner_id) == 12):
            raise InvalidRequestError(f"PeerOwnerId must be a 12-digit account id, got '{peer_owner_id}'.")
        return cls(
            local_vpc_id=request.require("VpcId"),
            peer_vpc_id=request.require("PeerVpcId"),
            peer_owner_id=peer_owner_id,
            peer_region=str(request.properties.get("PeerRegion") or default_region),
            peer_role_arn=_require_role_arn(request.require("PeerRoleArn"), "PeerRoleArn"),
            name=request.require("PeeringName"),
            env_name=request.require("EnvName"),
        )


@dataclass(frozen=True)
class PeeringConnectionIdentity:
    connection_id: str
    status_code: str


@dataclass(frozen=True)
class AcceptRequest:
    """A connection created elsewhere that the peer account has to accept."""
    connection_id: str
    peer_role_arn: str
    region: str

    @classmethod
    def from_request(cls, request: CustomResourceRequest, default_region: str) -> "AcceptRequest":
        return cls(
            connection_id=_require_connection_id(request.require("VpcPeeringConnectionId"), "VpcPeeringConnectionId"),
            peer_role_arn=_require_role_arn(request.require("PeerRoleArn"), "PeerRoleArn"),
            region=str(request.properties.get("Region") or default_region),
        )


@dataclass(frozen=True)
class RoutePropagationRequest:
    connection_id: str
    peer_vpc_id: str
    requester_vpc_cidr: str
    peer_role_arn: str
    region: str

    @classmethod
    def from_request(cls, request: CustomResourceRequest, default_region: str) -> "RoutePropagationRequest":
        cidr = request.require("RequesterVpcCidr")
        try:
            ipaddress.IPv4Network(cidr)
        except ValueError:
            raise InvalidRequestError(f"RequesterVpcCidr must be an IPv4 CIDR block, got '{cidr}'.")
        return cls(
            connection_id=_require_connection_id(request.require("VpcPeeringConnectionId"), "VpcPeeringConnectionId"),
            peer_vpc_id=request.require("PeerVpcId"),
            requester_vpc_cidr=cidr,
            peer_role_arn=_require_role_arn(request.require("PeerRoleArn"), "PeerRoleArn"),
            region=str(request.properties.get("Region") or default_region),
        )

    def intent_for(self, route_table_id: str) -> "RouteIntent":
        return RouteIntent(
            route_table_id=route_table_id,
            destination_cidr=self.requester_vpc_cidr,
            peering_connection_id=self.connection_id,
        )


@dataclass(frozen=True)
class RouteIntent:
    route_table_id: str
    destination_cidr: str
    peering_connection_id: str


@dataclass(frozen=True)
class AssumedCredentials:
    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: Optional[datetime] = None

    def __repr__(self) -> str:
        # Keep secrets out of CloudWatch if the object is ever printed
        return f"AssumedCredentials(access_key_id='{self.access_key_id}', expiration={self.expiration})"
