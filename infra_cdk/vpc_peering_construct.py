# infra_cdk/vpc_peering_construct.py
from enum import Enum
from typing import Dict

from aws_cdk import (
    CfnOutput,
    CustomResource,
    Stack,
    aws_ec2 as ec2,
    aws_lambda as _lambda,
    aws_ssm as ssm,
)
from constructs import Construct

from infra_cdk.environments import PeerAccountConfig
from infra_cdk.peering_function import PeeringFunction


class PeeringMode(Enum):
    # The create/accept handler creates, tags and accepts the connection
    CUSTOM_RESOURCE = "custom-resource"
    # CloudFormation creates the connection, the accept handler accepts it
    NATIVE = "native"


class VpcPeeringConstruct(Construct):
    '''
    A cross-account VPC peering connection from `vpc` to one peer account.

    Creates and accepts the connection, stores its id in SSM, routes the peer
    CIDR from every requester route table and, through the peer's acceptor
    role, routes the requester CIDR from every peer route table.
    '''

    def __init__(self, scope: Construct, construct_id: str, *,
                 vpc: ec2.IVpc,
                 peer: PeerAccountConfig,
                 peering_name: str,
                 layer: _lambda.ILayerVersion,
                 mode: PeeringMode = PeeringMode.CUSTOM_RESOURCE,
                 managed_by_tag: str = "CDK") -> None:
        super().__init__(scope, construct_id)

        region = peer.region or Stack.of(self).region

        # === 1. Create and accept the peering connection ===
        if mode is PeeringMode.CUSTOM_RESOURCE:
            create_accept = PeeringFunction(self, "CreateAcceptPeeringFunction",
                handler_dir="create_accept_peering",
                layer=layer,
                peer_role_arn=peer.role_arn,
                description=f"Creates and accepts VPC peering {peering_name}",
                local_ec2_actions=[
                    "ec2:CreateVpcPeeringConnection",
                    "ec2:CreateTags",
                    "ec2:DescribeVpcPeeringConnections",
                    "ec2:DeleteVpcPeeringConnection",
                ],
                managed_by_tag=managed_by_tag,
            )
            self.peering_connection = CustomResource(self, "PeeringConnection",
                service_token=create_accept.service_token,
                resource_type="Custom::VpcPeeringConnection",
                properties={
                    "VpcId": vpc.vpc_id,
                    "PeerVpcId": peer.vpc_id,
                    "PeerOwnerId": peer.account_id,
                    "PeerRegion": region,
                    "PeerRoleArn": peer.role_arn,
                    "PeeringName": peering_name,
                    "EnvName": peer.env_name,
                },
            )
            self.peering_connection_id = self.peering_connection.ref
            acceptance = self.peering_connection
        else:
            self.peering_connection = ec2.CfnVPCPeeringConnection(self, "PeeringConnection",
                vpc_id=vpc.vpc_id,
                peer_vpc_id=peer.vpc_id,
                peer_owner_id=peer.account_id,
                peer_region=region,
                tags=[
                    {"key": "Name", "value": peering_name},
                    {"key": "Environment", "value": peer.env_name},
                    {"key": "ManagedBy", "value": managed_by_tag},
                ],
            )
            self.peering_connection_id = self.peering_connection.ref

            accept = PeeringFunction(self, "AcceptPeeringFunction",
                handler_dir="accept_peering",
                layer=layer,
                peer_role_arn=peer.role_arn,
                description=f"Accepts VPC peering {peering_name} in the peer account",
            )
            acceptance = CustomResource(self, "AcceptPeering",
                service_token=accept.service_token,
                resource_type="Custom::VpcPeeringAcceptance",
                properties={
                    "VpcPeeringConnectionId": self.peering_connection_id,
                    "PeerRoleArn": peer.role_arn,
                    "Region": region,
                },
            )
            acceptance.node.add_dependency(self.peering_connection)

        # === 2. Publish the connection id ===
        self.ssm_parameter = ssm.StringParameter(self, "PeeringIdParameter",
            parameter_name=f"/vpc-peering/{peer.env_name}/connection-id",
            string_value=self.peering_connection_id,
            description=f"VPC Peering connection ID for {peering_name}",
            tier=ssm.ParameterTier.STANDARD,
        )

        # === 3. Requester-side routes ===
        route_tables: Dict[str, ec2.IRouteTable] = {}
        for subnet in list(vpc.private_subnets) + list(vpc.public_subnets):
            route_tables.setdefault(subnet.route_table.route_table_id, subnet.route_table)

        for index, route_table in enumerate(route_tables.values()):
            route = ec2.CfnRoute(self, f"Route{index}",
                route_table_id=route_table.route_table_id,
                destination_cidr_block=peer.vpc_cidr,
                vpc_peering_connection_id=self.peering_connection_id,
            )
            route.node.add_dependency(acceptance)

        # === 4. Peer-side routes (cross-account) ===
        update_routes = PeeringFunction(self, "UpdatePeerRoutesFunction",
            handler_dir="update_peer_routes",
            layer=layer,
            peer_role_arn=peer.role_arn,
            description=f"Routes peer VPC {peer.vpc_id} back through {peering_name}",
        )
        self.peer_routes = CustomResource(self, "UpdatePeerRoutes",
            service_token=update_routes.service_token,
            resource_type="Custom::VpcPeeringPeerRoutes",
            properties={
                "VpcPeeringConnectionId": self.peering_connection_id,
                "PeerVpcId": peer.vpc_id,
                "RequesterVpcCidr": vpc.vpc_cidr_block,
                "PeerRoleArn": peer.role_arn,
                "Region": region,
            },
        )
        # Routes reference a connection that only exists once it is accepted
        self.peer_routes.node.add_dependency(acceptance)

        # === Outputs ===
        CfnOutput(self, "PeeringConnectionId",
            value=self.peering_connection_id,
            description=f"VPC Peering connection to {peer.env_name}",
            export_name=f"vpc-peering-{peer.env_name}",
        )
        CfnOutput(self, "PeerVpcCidr",
            value=peer.vpc_cidr,
            description=f"Peer VPC CIDR for {peer.env_name}",
        )
