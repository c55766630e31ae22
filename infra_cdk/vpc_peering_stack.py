# infra_cdk/vpc_peering_stack.py
from typing import Dict, List, Optional

from aws_cdk import Stack, Tags, aws_ec2 as ec2
from cdk_nag import NagPackSuppression, NagSuppressions
from constructs import Construct

from infra_cdk.environments import PeerAccountConfig
from infra_cdk.peering_function import peering_common_layer
from infra_cdk.vpc_peering_construct import PeeringMode, VpcPeeringConstruct


class VpcPeeringStack(Stack):
    '''
    Peers the requester (pipeline) VPC with the VPC of every configured peer
    account. The acceptor role must already exist in each peer account
    (see PeeringAcceptorRoleStack).
    '''

    def __init__(self, scope: Construct, construct_id: str, *,
                 env_name: str,
                 peer_accounts: List[PeerAccountConfig],
                 vpc: Optional[ec2.IVpc] = None,
                 vpc_id: Optional[str] = None,
                 mode: PeeringMode = PeeringMode.CUSTOM_RESOURCE,
                 **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        if vpc is None:
            if not vpc_id:
                raise ValueError("VpcPeeringStack needs either a vpc or a vpc_id to look up.")
            vpc = ec2.Vpc.from_lookup(self, "RequesterVpc", vpc_id=vpc_id)
        self.vpc = vpc

        layer = peering_common_layer(self)

        self.peering_connections: Dict[str, VpcPeeringConstruct] = {}
        for peer in peer_accounts:
            self.peering_connections[peer.env_name] = VpcPeeringConstruct(self, f"PeeringTo{peer.env_name}",
                vpc=vpc,
                peer=peer,
                peering_name=f"{env_name}-to-{peer.env_name}",
                layer=layer,
                mode=mode,
            )

        # === Tags ===
        Tags.of(self).add("Stack", "VpcPeering")
        Tags.of(self).add("Environment", env_name)
        Tags.of(self).add("ManagedBy", "CDK")

        NagSuppressions.add_stack_suppressions(self, [
            NagPackSuppression(id="AwsSolutions-IAM4",
                reason="Handler and Provider framework functions use AWSLambdaBasicExecutionRole for CloudWatch Logs."),
            NagPackSuppression(id="AwsSolutions-IAM5",
                reason="Peering connection ids are unknown before creation; the Provider framework invokes its handler versions."),
            NagPackSuppression(id="AwsSolutions-L1",
                reason="The Provider framework function runtime is managed by CDK."),
        ])
