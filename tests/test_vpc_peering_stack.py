# tests/test_vpc_peering_stack.py
import shutil

import pytest

# Synthesising needs the jsii Node runtime behind aws-cdk-lib
pytestmark = pytest.mark.skipif(shutil.which("node") is None, reason="Node.js is required to synthesise CDK stacks")

PEER = dict(
    env_name="development",
    account_id="111111111111",
    vpc_id="vpc-0123456789abcdef0",
    vpc_cidr="10.1.0.0/16",
    role_arn="arn:aws:iam::111111111111:role/development-VpcPeeringAcceptorRole",
)


@pytest.fixture(scope="module")
def cdk():
    import aws_cdk
    return aws_cdk


def build_peering_template(cdk, mode_value="custom-resource"):
    from aws_cdk import aws_ec2 as ec2
    from aws_cdk.assertions import Template

    from infra_cdk.environments import PeerAccountConfig
    from infra_cdk.vpc_peering_construct import PeeringMode
    from infra_cdk.vpc_peering_stack import VpcPeeringStack

    app = cdk.App()
    network = cdk.Stack(app, "Network")
    vpc = ec2.Vpc(network, "Vpc", max_azs=2, nat_gateways=1)
    stack = VpcPeeringStack(app, "VpcPeeringStack-pipeline",
        env_name="pipeline",
        peer_accounts=[PeerAccountConfig(**PEER)],
        vpc=vpc,
        mode=PeeringMode(mode_value),
    )
    return Template.from_stack(stack)


def test_custom_resource_mode_wires_create_accept_and_routes(cdk):
    from aws_cdk.assertions import Match

    template = build_peering_template(cdk)

    template.has_resource_properties("Custom::VpcPeeringConnection", {
        "PeerVpcId": "vpc-0123456789abcdef0",
        "PeerOwnerId": "111111111111",
        "PeerRoleArn": PEER["role_arn"],
        "PeeringName": "pipeline-to-development",
        "EnvName": "development",
    })
    template.resource_count_is("AWS::EC2::VPCPeeringConnection", 0)
    template.has_resource_properties("Custom::VpcPeeringPeerRoutes", {
        "PeerVpcId": "vpc-0123456789abcdef0",
        "VpcPeeringConnectionId": {"Ref": Match.string_like_regexp("PeeringConnection")},
    })
    template.has_resource_properties("AWS::SSM::Parameter", {
        "Name": "/vpc-peering/development/connection-id",
    })
    template.has_output("*", {"Export": {"Name": "vpc-peering-development"}})


def test_requester_routes_cover_every_route_table(cdk):
    template = build_peering_template(cdk)

    # Two public subnets and two private subnets, each with its own route table
    template.resource_count_is("AWS::EC2::Route", 4)
    template.has_resource_properties("AWS::EC2::Route", {"DestinationCidrBlock": "10.1.0.0/16"})


def test_handlers_may_only_assume_the_peer_role(cdk):
    from aws_cdk.assertions import Match

    template = build_peering_template(cdk)

    template.has_resource_properties("AWS::IAM::Policy", {
        "PolicyDocument": {
            "Statement": Match.array_with([
                Match.object_like({"Action": "sts:AssumeRole", "Resource": PEER["role_arn"]}),
            ]),
        },
    })


def test_native_mode_uses_cloudformation_peering_and_accept_handler(cdk):
    template = build_peering_template(cdk, "native")

    template.resource_count_is("AWS::EC2::VPCPeeringConnection", 1)
    template.resource_count_is("Custom::VpcPeeringAcceptance", 1)
    template.resource_count_is("Custom::VpcPeeringConnection", 0)


def test_acceptor_role_trusts_requester_account(cdk):
    from aws_cdk.assertions import Match, Template

    from infra_cdk.acceptor_role_stack import PeeringAcceptorRoleStack

    app = cdk.App()
    stack = PeeringAcceptorRoleStack(app, "VpcPeeringAcceptorRole-development",
        requester_account_id="999999999999",
        env_name="development",
    )
    template = Template.from_stack(stack)

    template.has_resource_properties("AWS::IAM::Role", {
        "RoleName": "development-VpcPeeringAcceptorRole",
        "MaxSessionDuration": 3600,
        "AssumeRolePolicyDocument": {
            "Statement": Match.array_with([
                Match.object_like({
                    "Principal": {"AWS": Match.any_value()},
                    "Action": "sts:AssumeRole",
                }),
            ]),
        },
    })
    template.has_output("*", {"Export": {"Name": "development-vpc-peering-acceptor-role-arn"}})
    template.has_resource_properties("AWS::IAM::Policy", {
        "PolicyDocument": {
            "Statement": Match.array_with([
                Match.object_like({
                    "Sid": "ManageRoutes",
                    "Action": ["ec2:CreateRoute", "ec2:ReplaceRoute", "ec2:DeleteRoute", "ec2:DescribeRouteTables"],
                }),
            ]),
        },
    })
