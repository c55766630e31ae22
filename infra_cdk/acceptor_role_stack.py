# infra_cdk/acceptor_role_stack.py
from aws_cdk import CfnOutput, Duration, Stack, Tags, aws_iam as iam
from cdk_nag import NagPackSuppression, NagSuppressions
from constructs import Construct


class PeeringAcceptorRoleStack(Stack):
    '''
    Deployed in a PEER account (development, staging, production) before the
    peering stack runs. Creates the role the requester account assumes to
    accept peering connections and manage routes in the peer VPC.
    '''

    def __init__(self, scope: Construct, construct_id: str, *,
                 requester_account_id: str,
                 env_name: str,
                 **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.role = iam.Role(self, "Role",
            role_name=f"{env_name}-VpcPeeringAcceptorRole",
            assumed_by=iam.AccountPrincipal(requester_account_id),
            description=f"Allow {requester_account_id} (pipeline) to accept VPC peering and update routes in {env_name}",
            max_session_duration=Duration.hours(1),
        )

        self.role.add_to_policy(iam.PolicyStatement(
            sid="AcceptVpcPeeringConnection",
            effect=iam.Effect.ALLOW,
            actions=[
                "ec2:AcceptVpcPeeringConnection",
                "ec2:DescribeVpcPeeringConnections",
            ],
            resources=["*"],
        ))

        self.role.add_to_policy(iam.PolicyStatement(
            sid="ManageRoutes",
            effect=iam.Effect.ALLOW,
            actions=[
                "ec2:CreateRoute",
                "ec2:ReplaceRoute",
                "ec2:DeleteRoute",
                "ec2:DescribeRouteTables",
            ],
            resources=["*"],
        ))

        self.role.add_to_policy(iam.PolicyStatement(
            sid="DescribeVpcs",
            effect=iam.Effect.ALLOW,
            actions=["ec2:DescribeVpcs", "ec2:DescribeSubnets"],
            resources=["*"],
        ))

        self.role_arn = self.role.role_arn

        CfnOutput(self, "RoleArn",
            value=self.role_arn,
            description=f"IAM role ARN for VPC peering acceptor in {env_name}",
            export_name=f"{env_name}-vpc-peering-acceptor-role-arn",
        )

        Tags.of(self).add("Environment", env_name)
        Tags.of(self).add("Purpose", "VpcPeering")
        Tags.of(self).add("ManagedBy", "CDK")

        NagSuppressions.add_resource_suppressions(self.role, [
            NagPackSuppression(id="AwsSolutions-IAM5",
                reason="Peering connections and peer route tables are created after this role exists."),
        ], apply_to_children=True)
