#!/usr/bin/env python3
# app.py
"""
CDK entry point.

    cdk deploy -c stage=peering      # VpcPeeringStack in the pipeline account
    cdk deploy -c stage=acceptors    # one acceptor role stack per peer account

Account ids are read from the environment (or a .env file), peers from
config/peering.yml.
"""
import aws_cdk as cdk
from cdk_nag import AwsSolutionsChecks
from dotenv import load_dotenv

from infra_cdk.acceptor_role_stack import PeeringAcceptorRoleStack
from infra_cdk.environments import load_environment, load_peer_accounts
from infra_cdk.vpc_peering_construct import PeeringMode
from infra_cdk.vpc_peering_stack import VpcPeeringStack

load_dotenv()

app = cdk.App()
stage = app.node.try_get_context("stage") or "peering"

pipeline = load_environment("pipeline")
peers = load_peer_accounts()

if stage == "acceptors":
    for peer in peers:
        PeeringAcceptorRoleStack(app, f"VpcPeeringAcceptorRole-{peer.env_name}",
            requester_account_id=pipeline.account,
            env_name=peer.env_name,
            env=cdk.Environment(account=peer.account_id, region=peer.region or pipeline.region),
        )
elif stage == "peering":
    VpcPeeringStack(app, f"VpcPeeringStack-{pipeline.env_name}",
        env_name=pipeline.env_name,
        peer_accounts=peers,
        vpc_id=pipeline.requester_vpc_id,
        mode=PeeringMode(app.node.try_get_context("peering_mode") or PeeringMode.CUSTOM_RESOURCE.value),
        env=cdk.Environment(account=pipeline.account, region=pipeline.region),
    )
else:
    raise SystemExit(f"Unknown stage '{stage}'. Use -c stage=peering or -c stage=acceptors.")

cdk.Aspects.of(app).add(AwsSolutionsChecks(verbose=True))
app.synth()
