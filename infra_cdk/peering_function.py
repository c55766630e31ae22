# infra_cdk/peering_function.py
from pathlib import Path
from typing import List, Optional

from aws_cdk import (
    Duration,
    aws_iam as iam,
    aws_lambda as _lambda,
    aws_logs as logs,
    custom_resources as cr,
)
from constructs import Construct

ROOT_DIR = Path(__file__).resolve().parents[1]
LAMBDAS_DIR = ROOT_DIR / "lambdas"
LAYER_DIR = ROOT_DIR / "lambda_layer"


def peering_common_layer(scope: Construct, construct_id: str = "PeeringCommonLayer") -> _lambda.LayerVersion:
    """The shared layer holding the peering_common package."""
    return _lambda.LayerVersion(scope, construct_id,
        code=_lambda.Code.from_asset(str(LAYER_DIR)),
        compatible_runtimes=[_lambda.Runtime.PYTHON_3_12],
        description="Shared code for the VPC peering custom resource handlers"
    )


class PeeringFunction(Construct):
    '''
    A custom resource handler Lambda plus the Provider framework that invokes it.
    The function may assume the peer account's acceptor role and gets whatever
    EC2 actions it needs in its own account.
    '''

    def __init__(self, scope: Construct, construct_id: str, *,
                 handler_dir: str,
                 layer: _lambda.ILayerVersion,
                 peer_role_arn: str,
                 description: str,
                 local_ec2_actions: Optional[List[str]] = None,
                 managed_by_tag: str = "CDK",
                 timeout: Duration = Duration.minutes(5)) -> None:
        super().__init__(scope, construct_id)

        self.function = _lambda.Function(self, "Function",
            runtime=_lambda.Runtime.PYTHON_3_12,
            code=_lambda.Code.from_asset(str(LAMBDAS_DIR / handler_dir)),
            handler="app.handler",
            description=description,
            timeout=timeout,
            memory_size=256,
            environment={"PEERING_MANAGED_BY_TAG": managed_by_tag},
            layers=[layer],
            log_retention=logs.RetentionDays.ONE_WEEK,
        )

        # Only the peer's acceptor role may be assumed
        self.function.add_to_role_policy(iam.PolicyStatement(
            effect=iam.Effect.ALLOW,
            actions=["sts:AssumeRole"],
            resources=[peer_role_arn],
        ))

        if local_ec2_actions:
            # Peering connection ids are not known until creation
            self.function.add_to_role_policy(iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=local_ec2_actions,
                resources=["*"],
            ))

        self.provider = cr.Provider(self, "Provider",
            on_event_handler=self.function,
            log_retention=logs.RetentionDays.ONE_WEEK,
        )

    @property
    def service_token(self) -> str:
        return self.provider.service_token
