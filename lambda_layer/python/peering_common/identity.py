# lambda_layer/python/peering_common/identity.py
"""
Tagged physical resource identities.

CloudFormation only hands a bare string back to Update/Delete, so each handler
parses it against the kind it issued before acting on it.
"""
import re
from dataclasses import dataclass
from enum import Enum

from peering_common.errors import InvalidIdentityError

PEERING_CONNECTION_ID = re.compile(r"^pcx-[0-9a-f]{8,17}$")
ROUTES_SUFFIX = "-routes"


class ResourceKind(Enum):
    PEERING_CONNECTION = "peering-connection"
    PEERING_ACCEPTANCE = "peering-acceptance"
    PEER_ROUTES = "peer-routes"


@dataclass(frozen=True)
class ResourceIdentity:
    kind: ResourceKind
    id: str

    def __post_init__(self):
        if not is_peering_connection_id(self.id):
            raise InvalidIdentityError(f"'{self.id}' is not a VPC peering connection id.")

    @property
    def physical_id(self) -> str:
        """The string reported to CloudFormation as PhysicalResourceId."""
        if self.kind is ResourceKind.PEER_ROUTES:
            return f"{self.id}{ROUTES_SUFFIX}"
        return self.id

    @classmethod
    def parse(cls, kind: ResourceKind, physical_id: str) -> "ResourceIdentity":
        """
        Parses a physical id previously issued for `kind`.

        Raises:
            InvalidIdentityError: If the id is empty or was issued for another kind.
        """
        if not physical_id:
            raise InvalidIdentityError(f"Empty physical id for {kind.value}.")

        is_routes_id = physical_id.endswith(ROUTES_SUFFIX)
        if kind is ResourceKind.PEER_ROUTES:
            if not is_routes_id:
                raise InvalidIdentityError(f"'{physical_id}' was not issued for {kind.value}.")
            return cls(kind, physical_id[:-len(ROUTES_SUFFIX)])

        if is_routes_id:
            raise InvalidIdentityError(f"'{physical_id}' was not issued for {kind.value}.")
        return cls(kind, physical_id)


def is_peering_connection_id(value: str) -> bool:
    return bool(value) and PEERING_CONNECTION_ID.match(value) is not None
