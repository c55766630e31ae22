# cli/invoke_peering.py
"""
Invokes one of the peering custom resource handlers in-process with real AWS
credentials, e.g. to finish a teardown by hand:

    python -m cli.invoke_peering create-accept Delete --physical-id pcx-0123456789abcdef0
    python -m cli.invoke_peering routes Create -p VpcPeeringConnectionId=pcx-... -p PeerVpcId=vpc-... \
        -p RequesterVpcCidr=10.0.0.0/16 -p PeerRoleArn=arn:aws:iam::111111111111:role/x -p Region=eu-west-1
"""
import argparse
import importlib
import json
import sys

from dotenv import load_dotenv

# Load environment variables (AWS_PROFILE, AWS_REGION, ...) from a .env file for local runs
load_dotenv()

HANDLER_MODULES = {
    "create-accept": "lambdas.create_accept_peering.app",
    "accept": "lambdas.accept_peering.app",
    "routes": "lambdas.update_peer_routes.app",
}


def parse_properties(pairs: list[str]) -> dict:
    properties = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Property must look like Key=Value, got '{pair}'")
        properties[key] = value
    return properties


def build_event(request_type: str, properties: dict, physical_id: str = None) -> dict:
    """Creates an event shaped like the ones the CDK Provider framework sends."""
    event = {
        "RequestType": request_type,
        "ResourceProperties": properties,
    }
    if physical_id:
        event["PhysicalResourceId"] = physical_id
    return event


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Invoke a VPC peering custom resource handler locally.")
    parser.add_argument("handler", choices=sorted(HANDLER_MODULES), help="Which handler to run.")
    parser.add_argument("request_type", choices=["Create", "Update", "Delete"])
    parser.add_argument("-p", "--property", action="append", default=[], metavar="KEY=VALUE",
                        help="A ResourceProperties entry; repeat for several.")
    parser.add_argument("--properties-file", help="JSON file holding ResourceProperties.")
    parser.add_argument("--physical-id", help="PhysicalResourceId for Update/Delete.")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    properties = {}
    if args.properties_file:
        with open(args.properties_file, "r") as f:
            properties.update(json.load(f))
    try:
        properties.update(parse_properties(args.property))
    except argparse.ArgumentTypeError as e:
        print(f"❌ ERROR: {e}")
        return 2

    event = build_event(args.request_type, properties, args.physical_id)
    module = importlib.import_module(HANDLER_MODULES[args.handler])

    try:
        response = module.handler(event, None)
    except Exception as e:
        print(f"\n❌ Handler failed: {e}")
        return 1

    print("\n✅ Handler succeeded.")
    print(json.dumps(response, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
