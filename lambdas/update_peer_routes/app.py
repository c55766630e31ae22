# lambdas/update_peer_routes/app.py
from typing import List, Optional

from botocore.exceptions import ClientError

# Shared code from the peering_common Lambda layer
from peering_common.credentials import ClientFactory, RoleAssumer
from peering_common.envelope import CustomResourceRequest, CustomResourceResponse, dispatch
from peering_common.errors import error_code, error_message
from peering_common.identity import ResourceIdentity, ResourceKind
from peering_common.models import RouteIntent, RoutePropagationRequest
from peering_common.outcomes import CleanupResult, RouteOutcome, RoutePropagationReport, RouteResult
from peering_common.settings import HandlerSettings

ROUTE_ALREADY_EXISTS = "RouteAlreadyExists"
ROUTE_NOT_FOUND = "InvalidRoute.NotFound"


def describe_route_tables(ec2, vpc_id: str) -> List[dict]:
    """Lists every route table in a VPC, following pagination."""
    route_tables = []
    paginator = ec2.get_paginator("describe_route_tables")
    for page in paginator.paginate(Filters=[{"Name": "vpc-id", "Values": [vpc_id]}]):
        route_tables.extend(page.get("RouteTables", []))
    return route_tables


def routes_through(route_table: dict, intent: RouteIntent) -> bool:
    """True if the table routes the intent's CIDR through the intent's connection."""
    return any(
        route.get("DestinationCidrBlock") == intent.destination_cidr
        and route.get("VpcPeeringConnectionId") == intent.peering_connection_id
        for route in route_table.get("Routes", [])
    )


def current_route(route_table: dict, destination_cidr: str) -> Optional[dict]:
    """The table's route for a destination CIDR, if it has one."""
    for route in route_table.get("Routes", []):
        if route.get("DestinationCidrBlock") == destination_cidr:
            return route
    return None


def add_route(ec2, intent: RouteIntent, route_table: Optional[dict] = None) -> RouteResult:
    """
    Upserts a single route. Never raises; the outcome says what happened.

    A route for the CIDR that goes through a different peering connection is
    repointed at this one. A route through any other kind of target is left
    alone.
    """
    try:
        ec2.create_route(
            RouteTableId=intent.route_table_id,
            DestinationCidrBlock=intent.destination_cidr,
            VpcPeeringConnectionId=intent.peering_connection_id,
        )
        return RouteResult(intent.route_table_id, RouteOutcome.CREATED)
    except ClientError as e:
        if error_code(e) != ROUTE_ALREADY_EXISTS:
            return RouteResult(intent.route_table_id, RouteOutcome.FAILED, error_message(e))

    existing = current_route(route_table or {}, intent.destination_cidr) or {}
    previous = existing.get("VpcPeeringConnectionId")
    if not previous or previous == intent.peering_connection_id:
        return RouteResult(intent.route_table_id, RouteOutcome.ALREADY_EXISTS)

    try:
        ec2.replace_route(
            RouteTableId=intent.route_table_id,
            DestinationCidrBlock=intent.destination_cidr,
            VpcPeeringConnectionId=intent.peering_connection_id,
        )
    except ClientError as e:
        return RouteResult(intent.route_table_id, RouteOutcome.FAILED, error_message(e))
    return RouteResult(intent.route_table_id, RouteOutcome.REPLACED,
                       f"{previous} -> {intent.peering_connection_id}")


def remove_route(ec2, intent: RouteIntent) -> CleanupResult:
    target = f"route {intent.destination_cidr} in {intent.route_table_id}"
    try:
        ec2.delete_route(
            RouteTableId=intent.route_table_id,
            DestinationCidrBlock=intent.destination_cidr,
        )
        return CleanupResult.removed(target)
    except ClientError as e:
        if error_code(e) == ROUTE_NOT_FOUND:
            return CleanupResult.already_absent(target)
        return CleanupResult.failed(target, error_message(e))


class PeerRoutesHandler:
    """
    Adds (and on delete removes) a route to the requester VPC CIDR in every
    route table of the peer VPC, through the peering connection.
    """

    def __init__(self, settings: HandlerSettings, clients: ClientFactory):
        self.settings = settings
        self.role_assumer = RoleAssumer(clients)

    def on_create(self, request: CustomResourceRequest) -> CustomResourceResponse:
        routes = RoutePropagationRequest.from_request(request, self.settings.aws_region)
        report = self.propagate(routes)
        return CustomResourceResponse(
            physical_resource_id=ResourceIdentity(ResourceKind.PEER_ROUTES, routes.connection_id).physical_id,
            data={
                "RouteTablesUpdated": report.updated_count,
                "RouteTablesFailed": report.failed_count,
            },
        )

    def on_update(self, request: CustomResourceRequest) -> CustomResourceResponse:
        # Re-running the upsert picks up route tables added since the last run
        return self.on_create(request)

    def on_delete(self, request: CustomResourceRequest) -> CustomResourceResponse:
        results = self.cleanup(request)
        for result in results:
            result.log()
        print(f"Route cleanup finished: {sum(1 for r in results if r.ok)}/{len(results)} ok")

        physical_id = request.physical_resource_id
        if not physical_id:
            connection_id = request.properties.get("VpcPeeringConnectionId", "unknown")
            physical_id = f"{connection_id}-routes"
        return CustomResourceResponse(physical_resource_id=physical_id)

    # Core logic

    def propagate(self, routes: RoutePropagationRequest) -> RoutePropagationReport:
        """
        Assumes the peer role and upserts the route in each peer route table, one
        at a time. A failing table is recorded and the loop moves on.

        Raises:
            AssumptionDenied: Before any route table is touched.
        """
        ec2 = self.role_assumer.peer_ec2(routes.peer_role_arn, self.settings.routes_session_name, routes.region)

        route_tables = describe_route_tables(ec2, routes.peer_vpc_id)
        print(f"Found {len(route_tables)} route tables in peer VPC {routes.peer_vpc_id}")

        report = RoutePropagationReport()
        for route_table in route_tables:
            report.record(add_route(ec2, routes.intent_for(route_table["RouteTableId"]), route_table))

        print(f" -> {report.summary()}")
        return report

    def cleanup(self, request: CustomResourceRequest) -> List[CleanupResult]:
        """
        Removes the route from every peer route table that still routes the
        requester CIDR through this connection. Tables without that route are
        left alone. Never raises.
        """
        try:
            routes = RoutePropagationRequest.from_request(request, self.settings.aws_region)
        except ValueError as e:
            return [CleanupResult.failed(str(request.physical_resource_id), str(e))]

        target = ResourceIdentity(ResourceKind.PEER_ROUTES, routes.connection_id).physical_id
        try:
            ec2 = self.role_assumer.peer_ec2(routes.peer_role_arn, self.settings.routes_session_name, routes.region)
            route_tables = describe_route_tables(ec2, routes.peer_vpc_id)
        except Exception as e:
            # Teardown must not get stuck on a peer account we can no longer reach
            return [CleanupResult.failed(target, str(e))]

        intents = [routes.intent_for(rt["RouteTableId"]) for rt in route_tables]
        owned = [intent for rt, intent in zip(route_tables, intents) if routes_through(rt, intent)]
        if not owned:
            return [CleanupResult.already_absent(target, "no peer route table routes through the connection")]

        print(f"Found {len(owned)} of {len(route_tables)} peer route tables routing through {routes.connection_id}")
        return [remove_route(ec2, intent) for intent in owned]


# Built once per container and reused by warm invocations.
SETTINGS = HandlerSettings.from_environment()
HANDLER = PeerRoutesHandler(SETTINGS, ClientFactory())


def handler(event, context):
    """
    Custom resource onEvent handler that keeps the peer VPC's route tables
    pointing at the requester VPC through the peering connection.
    """
    print("--- UpdatePeerRoutes Lambda Triggered ---")
    return dispatch(event, HANDLER.on_create, HANDLER.on_update, HANDLER.on_delete)
