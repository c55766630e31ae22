# lambdas/accept_peering/app.py
from botocore.exceptions import ClientError

# Shared code from the peering_common Lambda layer
from peering_common.credentials import ClientFactory, RoleAssumer
from peering_common.envelope import CustomResourceRequest, CustomResourceResponse, dispatch
from peering_common.errors import error_code
from peering_common.identity import ResourceIdentity, ResourceKind
from peering_common.models import AcceptRequest
from peering_common.outcomes import CleanupResult
from peering_common.settings import HandlerSettings

# A connection that is no longer pending acceptance is reported as not found
ALREADY_ACCEPTED_CODES = frozenset({"InvalidVpcPeeringConnectionID.NotFound"})


class PeeringAcceptHandler:
    """
    Accepts, from the peer account, a peering connection that CloudFormation
    created natively in the requester account.
    """

    def __init__(self, settings: HandlerSettings, clients: ClientFactory):
        self.settings = settings
        self.role_assumer = RoleAssumer(clients)

    def on_create(self, request: CustomResourceRequest) -> CustomResourceResponse:
        accept = AcceptRequest.from_request(request, self.settings.aws_region)
        physical_id = ResourceIdentity(ResourceKind.PEERING_ACCEPTANCE, accept.connection_id).physical_id

        peer_ec2 = self.role_assumer.peer_ec2(accept.peer_role_arn, self.settings.accept_session_name, accept.region)
        try:
            response = peer_ec2.accept_vpc_peering_connection(VpcPeeringConnectionId=accept.connection_id)
        except ClientError as e:
            if error_code(e) in ALREADY_ACCEPTED_CODES:
                print(f" -> Peering connection {accept.connection_id} already accepted ({error_code(e)})")
                return CustomResourceResponse(physical_resource_id=physical_id)
            print(f"❌ Error accepting peering: {e}")
            raise

        status = response.get("VpcPeeringConnection", {}).get("Status", {}).get("Code") or "accepted"
        print(f" -> ✅ Accepted peering connection: {accept.connection_id} (status {status})")
        return CustomResourceResponse(
            physical_resource_id=physical_id,
            data={"PeeringConnectionId": accept.connection_id, "Status": status},
        )

    def on_update(self, request: CustomResourceRequest) -> CustomResourceResponse:
        return self.on_create(request)

    def on_delete(self, request: CustomResourceRequest) -> CustomResourceResponse:
        # The CloudFormation peering resource owns the connection and deletes it
        physical_id = request.physical_resource_id or request.properties.get("VpcPeeringConnectionId", "deleted")
        CleanupResult.already_absent(str(physical_id), "owned by the VPCPeeringConnection resource").log()
        return CustomResourceResponse(physical_resource_id=physical_id)


# Built once per container and reused by warm invocations.
SETTINGS = HandlerSettings.from_environment()
HANDLER = PeeringAcceptHandler(SETTINGS, ClientFactory())


def handler(event, context):
    """Custom resource onEvent handler that accepts a peering connection in the peer account."""
    print("--- AcceptPeering Lambda Triggered ---")
    return dispatch(event, HANDLER.on_create, HANDLER.on_update, HANDLER.on_delete)
