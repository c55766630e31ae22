# lambdas/create_accept_peering/app.py
from botocore.exceptions import BotoCoreError, ClientError

# Shared code from the peering_common Lambda layer
from peering_common.credentials import ClientFactory, RoleAssumer
from peering_common.envelope import CustomResourceRequest, CustomResourceResponse, dispatch
from peering_common.errors import (
    InvalidIdentityError,
    OrphanedPeeringConnection,
    PeeringError,
    error_code,
    error_message,
)
from peering_common.identity import ResourceIdentity, ResourceKind
from peering_common.models import TERMINAL_PEERING_STATES, PeeringConnectionIdentity, PeeringRequest
from peering_common.outcomes import CleanupResult
from peering_common.settings import HandlerSettings

NOT_FOUND_CODES = frozenset({"InvalidVpcPeeringConnectionID.NotFound", "InvalidVpcPeeringConnectionId.NotFound"})

# Errors after creation leave the connection behind unaccepted
STEP_ERRORS = (ClientError, BotoCoreError, PeeringError)


class PeeringConnectionHandler:
    """
    Creates a VPC peering connection in this account and accepts it in the peer
    account by assuming the peer's acceptor role.
    """

    def __init__(self, settings: HandlerSettings, clients: ClientFactory):
        self.settings = settings
        self.clients = clients
        self.role_assumer = RoleAssumer(clients)

    def on_create(self, request: CustomResourceRequest) -> CustomResourceResponse:
        peering = PeeringRequest.from_request(request, self.settings.aws_region)
        identity = self.create_and_accept(peering)
        return CustomResourceResponse(
            physical_resource_id=ResourceIdentity(ResourceKind.PEERING_CONNECTION, identity.connection_id).physical_id,
            data={
                "PeeringConnectionId": identity.connection_id,
                "Status": identity.status_code,
            },
        )

    def on_update(self, request: CustomResourceRequest) -> CustomResourceResponse:
        # Peering endpoints are immutable; the existing connection is kept as-is.
        physical_id = request.physical_resource_id or "unknown"
        print(f"Update requested for peering: {physical_id}")
        changed = request.changed_properties()
        if changed:
            print(f"⚠️ Ignoring changed properties {changed}; replace the resource to apply them.")
        return CustomResourceResponse(
            physical_resource_id=physical_id,
            data={"PeeringConnectionId": physical_id},
        )

    def on_delete(self, request: CustomResourceRequest) -> CustomResourceResponse:
        physical_id = request.physical_resource_id
        try:
            identity = ResourceIdentity.parse(ResourceKind.PEERING_CONNECTION, physical_id)
        except InvalidIdentityError as e:
            # Create never got as far as issuing a connection id
            CleanupResult.already_absent(str(physical_id), str(e)).log()
            return CustomResourceResponse(physical_resource_id=physical_id or "deleted")

        result = self.delete_connection(identity.id)
        result.log()
        return CustomResourceResponse(physical_resource_id=identity.physical_id)

    # Core logic

    def create_and_accept(self, peering: PeeringRequest) -> PeeringConnectionIdentity:
        """
        Runs the create -> tag -> assume -> accept sequence.

        Raises:
            ClientError: If the connection request itself is rejected.
            PeeringError: If no connection id comes back.
            OrphanedPeeringConnection: If any step after creation fails; it names the connection id.
        """
        # The request is issued from the requester VPC's region
        ec2 = self.clients.ec2(self.settings.aws_region)

        print(f"Creating VPC peering connection from {peering.local_vpc_id} to {peering.peer_vpc_id} "
              f"in account {peering.peer_owner_id} ({peering.peer_region})")
        response = ec2.create_vpc_peering_connection(
            VpcId=peering.local_vpc_id,
            PeerVpcId=peering.peer_vpc_id,
            PeerOwnerId=peering.peer_owner_id,
            PeerRegion=peering.peer_region,
        )
        connection_id = response.get("VpcPeeringConnection", {}).get("VpcPeeringConnectionId")
        if not connection_id:
            raise PeeringError("Failed to create VPC peering connection - no ID returned")
        print(f" -> ✅ Created peering connection: {connection_id}")

        try:
            ec2.create_tags(
                Resources=[connection_id],
                Tags=[
                    {"Key": "Name", "Value": peering.name},
                    {"Key": "Environment", "Value": peering.env_name},
                    {"Key": "ManagedBy", "Value": self.settings.managed_by_tag},
                ],
            )
        except STEP_ERRORS as e:
            raise OrphanedPeeringConnection(connection_id, "tagging", error_message(e)) from e

        try:
            peer_ec2 = self.role_assumer.peer_ec2(
                peering.peer_role_arn, self.settings.accept_session_name, peering.peer_region
            )
        except STEP_ERRORS as e:
            raise OrphanedPeeringConnection(connection_id, "role assumption", error_message(e)) from e

        print(f"Accepting peering connection: {connection_id}")
        try:
            accept_response = peer_ec2.accept_vpc_peering_connection(VpcPeeringConnectionId=connection_id)
        except STEP_ERRORS as e:
            raise OrphanedPeeringConnection(connection_id, "acceptance", error_message(e)) from e

        status = accept_response.get("VpcPeeringConnection", {}).get("Status", {}).get("Code") or "accepted"
        print(f" -> ✅ Accepted peering connection. Status: {status}")
        return PeeringConnectionIdentity(connection_id=connection_id, status_code=status)

    def delete_connection(self, connection_id: str) -> CleanupResult:
        """Deletes the connection unless it is already gone. Never raises."""
        print(f"Deleting peering connection: {connection_id}")
        try:
            ec2 = self.clients.ec2(self.settings.aws_region)
            described = ec2.describe_vpc_peering_connections(VpcPeeringConnectionIds=[connection_id])
            connections = described.get("VpcPeeringConnections", [])
            if not connections:
                return CleanupResult.already_absent(connection_id, "not found")

            status = connections[0].get("Status", {}).get("Code")
            if status in TERMINAL_PEERING_STATES:
                return CleanupResult.already_absent(connection_id, f"status {status}")

            ec2.delete_vpc_peering_connection(VpcPeeringConnectionId=connection_id)
            return CleanupResult.removed(connection_id)
        except ClientError as e:
            if error_code(e) in NOT_FOUND_CODES:
                return CleanupResult.already_absent(connection_id, "not found")
            return CleanupResult.failed(connection_id, error_message(e))
        except Exception as e:
            # Teardown must never get stuck on a leaked connection
            return CleanupResult.failed(connection_id, str(e))


# Built once per container and reused by warm invocations.
SETTINGS = HandlerSettings.from_environment()
HANDLER = PeeringConnectionHandler(SETTINGS, ClientFactory())


def handler(event, context):
    """
    Custom resource onEvent handler that creates and accepts a cross-account
    VPC peering connection.
    """
    print("--- CreateAcceptPeering Lambda Triggered ---")
    return dispatch(event, HANDLER.on_create, HANDLER.on_update, HANDLER.on_delete)
