# infra_cdk/environments.py
"""
Single source of truth for deployment configuration.

Account ids come from environment variables so they stay out of source
control; peer accounts are listed in config/peering.yml. Everything is
validated once when the CDK app starts and then passed to the stacks.
"""
import ipaddress
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

import yaml

DEFAULT_REGION = "eu-west-1"
DEFAULT_PEERING_FILE = Path(__file__).resolve().parents[1] / "config" / "peering.yml"

# Which variable holds the account id of each environment
ACCOUNT_VARIABLES = {
    "pipeline": "AWS_PIPELINE_ACCOUNT_ID",
    "development": "AWS_ACCOUNT_ID_DEV",
    "staging": "AWS_ACCOUNT_ID_STAGING",
    "production": "AWS_ACCOUNT_ID_PROD",
}

ACCOUNT_ID = re.compile(r"^\d{12}$")
ROLE_ARN = re.compile(r"^arn:aws[a-z-]*:iam::\d{12}:role/[\w+=,.@/-]+$")
VPC_ID = re.compile(r"^vpc-[0-9a-f]{8,17}$")


class ConfigurationError(ValueError):
    """Raised when the deployment configuration fails validation."""
    pass


def _check_account(value: str, what: str) -> str:
    if not ACCOUNT_ID.match(value or ""):
        raise ConfigurationError(f"{what} must be a 12-digit AWS account id, got '{value}'.")
    return value


def _check_vpc_id(value: str, what: str) -> str:
    if not VPC_ID.match(value or ""):
        raise ConfigurationError(f"{what} must be a VPC id (vpc-...), got '{value}'.")
    return value


def acceptor_role_arn(account_id: str, env_name: str) -> str:
    """ARN of the role PeeringAcceptorRoleStack creates in a peer account."""
    return f"arn:aws:iam::{account_id}:role/{env_name}-VpcPeeringAcceptorRole"


@dataclass(frozen=True)
class EnvironmentConfig:
    account: str
    region: str
    env_name: str
    pipeline_account: Optional[str] = None
    requester_vpc_id: Optional[str] = None

    def __post_init__(self):
        if not self.env_name:
            raise ConfigurationError("env_name must not be empty.")
        _check_account(self.account, f"Account for '{self.env_name}'")
        if not self.region:
            raise ConfigurationError(f"Region for '{self.env_name}' must not be empty.")
        if self.pipeline_account:
            _check_account(self.pipeline_account, "Pipeline account")
        if self.requester_vpc_id:
            _check_vpc_id(self.requester_vpc_id, f"Requester VPC for '{self.env_name}'")


@dataclass(frozen=True)
class PeerAccountConfig:
    env_name: str
    account_id: str
    vpc_id: str
    vpc_cidr: str
    role_arn: str
    region: Optional[str] = None

    def __post_init__(self):
        if not self.env_name:
            raise ConfigurationError("Peer env_name must not be empty.")
        _check_account(self.account_id, f"Peer '{self.env_name}' account_id")
        _check_vpc_id(self.vpc_id, f"Peer '{self.env_name}' vpc_id")
        try:
            ipaddress.IPv4Network(self.vpc_cidr)
        except ValueError:
            raise ConfigurationError(f"Peer '{self.env_name}' vpc_cidr is not a CIDR block: '{self.vpc_cidr}'.")
        if not ROLE_ARN.match(self.role_arn):
            raise ConfigurationError(f"Peer '{self.env_name}' role_arn is not an IAM role ARN: '{self.role_arn}'.")
        if f"::{self.account_id}:" not in self.role_arn:
            raise ConfigurationError(f"Peer '{self.env_name}' role_arn must live in account {self.account_id}.")

    @classmethod
    def from_dict(cls, item: dict) -> "PeerAccountConfig":
        try:
            env_name = str(item["env_name"])
            account_id = str(item["account_id"])
            return cls(
                env_name=env_name,
                account_id=account_id,
                vpc_id=str(item["vpc_id"]),
                vpc_cidr=str(item["vpc_cidr"]),
                role_arn=str(item.get("role_arn") or acceptor_role_arn(account_id, env_name)),
                region=item.get("region"),
            )
        except KeyError as e:
            raise ConfigurationError(f"Peer account entry is missing required key {e}: {item}")


def load_environment(env_name: str, environ: Optional[Mapping[str, str]] = None) -> EnvironmentConfig:
    """Builds the config of one named environment from environment variables."""
    env = os.environ if environ is None else environ
    if env_name not in ACCOUNT_VARIABLES:
        raise ConfigurationError(
            f"Unknown environment '{env_name}'. Expected one of: {', '.join(sorted(ACCOUNT_VARIABLES))}"
        )
    account_variable = ACCOUNT_VARIABLES[env_name]
    account = env.get(account_variable, "")
    if not account:
        raise ConfigurationError(f"Missing required environment variable: {account_variable}")

    return EnvironmentConfig(
        account=account,
        region=env.get("AWS_REGION") or DEFAULT_REGION,
        env_name=env_name,
        pipeline_account=env.get("AWS_PIPELINE_ACCOUNT_ID") or None,
        requester_vpc_id=env.get("REQUESTER_VPC_ID") or None,
    )


def load_peer_accounts(path: Path = DEFAULT_PEERING_FILE) -> List[PeerAccountConfig]:
    """Reads the peer account list from a YAML file."""
    if not Path(path).exists():
        raise ConfigurationError(f"Peering config file not found at: {path}")

    with open(path, "r") as f:
        config = yaml.safe_load(f) or {}

    peers = [PeerAccountConfig.from_dict(item) for item in config.get("peer_accounts", [])]
    names = [p.env_name for p in peers]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate peer env_name in {path}: {', '.join(duplicates)}")
    return peers
