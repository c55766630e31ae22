# lambda_layer/python/peering_common/credentials.py
from typing import Optional

import boto3
from botocore.exceptions import ClientError

from peering_common.errors import AssumptionDenied, error_code, error_message
from peering_common.models import AssumedCredentials

ACCESS_DENIED_CODES = frozenset({"AccessDenied", "AccessDeniedException"})


class ClientFactory:
    """
    Builds boto3 clients, either with the Lambda's own credentials or with
    credentials assumed in a peer account.
    """

    def __init__(self, session: Optional[boto3.session.Session] = None):
        self._session = session

    @property
    def session(self) -> boto3.session.Session:
        # Created lazily so importing a handler never needs a region or credentials
        if self._session is None:
            self._session = boto3.session.Session()
        return self._session

    def sts(self, region: str):
        return self.session.client("sts", region_name=region)

    def ec2(self, region: str, credentials: Optional[AssumedCredentials] = None):
        if credentials is None:
            return self.session.client("ec2", region_name=region)
        return self.session.client(
            "ec2",
            region_name=region,
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.secret_access_key,
            aws_session_token=credentials.session_token,
        )


class RoleAssumer:
    """Exchanges a cross-account role ARN for temporary credentials."""

    def __init__(self, clients: ClientFactory):
        self.clients = clients

    def assume(self, role_arn: str, session_name: str, region: str) -> AssumedCredentials:
        """
        Calls sts:AssumeRole once. There is no retry: a denied trust
        relationship needs an operator before it can succeed.

        Raises:
            AssumptionDenied: If the trust policy refuses the caller or no credentials come back.
            ClientError: For any other STS failure.
        """
        print(f" -> Assuming role: {role_arn} (session '{session_name}', region {region})")
        try:
            response = self.clients.sts(region).assume_role(
                RoleArn=role_arn,
                RoleSessionName=session_name,
            )
        except ClientError as e:
            if error_code(e) in ACCESS_DENIED_CODES:
                print(f" -> ❌ Role assumption denied for {role_arn}: {error_message(e)}")
                raise AssumptionDenied(role_arn, error_message(e)) from e
            raise

        credentials = response.get("Credentials")
        if not credentials:
            raise AssumptionDenied(role_arn, "no credentials returned")

        print(f" -> ✅ Assumed role {role_arn}, credentials expire at {credentials.get('Expiration')}")
        return AssumedCredentials(
            access_key_id=credentials["AccessKeyId"],
            secret_access_key=credentials["SecretAccessKey"],
            session_token=credentials["SessionToken"],
            expiration=credentials.get("Expiration"),
        )

    def peer_ec2(self, role_arn: str, session_name: str, region: str):
        """Returns an EC2 client acting as the peer account."""
        credentials = self.assume(role_arn, session_name, region)
        return self.clients.ec2(region, credentials)
