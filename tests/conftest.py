# tests/conftest.py
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from peering_common.settings import HandlerSettings

CONNECTION_ID = "pcx-0123456789abcdef0"
PEER_ROLE_ARN = "arn:aws:iam::111111111111:role/development-VpcPeeringAcceptorRole"


def client_error(code: str, message: str = "", operation: str = "Operation") -> ClientError:
    """Builds the ClientError botocore raises for a failed service call."""
    return ClientError({"Error": {"Code": code, "Message": message or code}}, operation)


class FakeEc2:
    """
    In-memory stand-in for the peer account's route tables.
    Behaves like EC2 for CreateRoute/ReplaceRoute/DeleteRoute/DescribeRouteTables.
    """

    def __init__(self, route_table_ids):
        self.route_tables = {rt: [] for rt in route_table_ids}
        self.create_route_calls = 0

    def get_paginator(self, operation_name):
        assert operation_name == "describe_route_tables"
        paginator = MagicMock()
        paginator.paginate.side_effect = lambda Filters: [{
            "RouteTables": [
                {"RouteTableId": rt, "Routes": [dict(r) for r in routes]}
                for rt, routes in self.route_tables.items()
            ]
        }]
        return paginator

    def create_route(self, RouteTableId, DestinationCidrBlock, VpcPeeringConnectionId):
        self.create_route_calls += 1
        routes = self.route_tables[RouteTableId]
        if any(r["DestinationCidrBlock"] == DestinationCidrBlock for r in routes):
            raise client_error("RouteAlreadyExists", "The route identified by 10.0.0.0/16 already exists.", "CreateRoute")
        routes.append({"DestinationCidrBlock": DestinationCidrBlock, "VpcPeeringConnectionId": VpcPeeringConnectionId})

    def replace_route(self, RouteTableId, DestinationCidrBlock, VpcPeeringConnectionId):
        for route in self.route_tables[RouteTableId]:
            if route["DestinationCidrBlock"] == DestinationCidrBlock:
                route["VpcPeeringConnectionId"] = VpcPeeringConnectionId
                return
        raise client_error("InvalidRoute.NotFound", "no route", "ReplaceRoute")

    def delete_route(self, RouteTableId, DestinationCidrBlock):
        routes = self.route_tables[RouteTableId]
        remaining = [r for r in routes if r["DestinationCidrBlock"] != DestinationCidrBlock]
        if len(remaining) == len(routes):
            raise client_error("InvalidRoute.NotFound", "no route", "DeleteRoute")
        self.route_tables[RouteTableId] = remaining


class FakeClients:
    """
    Replaces ClientFactory: hands out one mock for the local account's EC2,
    one for the peer account's EC2 (whenever credentials are passed) and one for STS.
    """

    def __init__(self):
        self.local_ec2 = MagicMock(name="local_ec2")
        self.peer_ec2 = MagicMock(name="peer_ec2")
        self.sts_client = MagicMock(name="sts")
        self.sts_client.assume_role.return_value = {
            "Credentials": {
                "AccessKeyId": "ASIAEXAMPLE",
                "SecretAccessKey": "secret",
                "SessionToken": "token",
                "Expiration": datetime(2030, 1, 1, tzinfo=timezone.utc),
            }
        }
        self.ec2_calls = []

    def sts(self, region):
        return self.sts_client

    def ec2(self, region, credentials=None):
        self.ec2_calls.append((region, credentials))
        return self.peer_ec2 if credentials is not None else self.local_ec2


def set_route_tables(ec2_mock, route_tables):
    """Makes describe_route_tables on a MagicMock client return the given tables."""
    ec2_mock.get_paginator.return_value.paginate.return_value = [{"RouteTables": route_tables}]


@pytest.fixture
def settings() -> HandlerSettings:
    return HandlerSettings(aws_region="eu-west-1")


@pytest.fixture
def clients() -> FakeClients:
    return FakeClients()
