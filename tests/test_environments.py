# tests/test_environments.py
import pytest
import yaml

from infra_cdk.environments import (
    DEFAULT_PEERING_FILE,
    ConfigurationError,
    PeerAccountConfig,
    acceptor_role_arn,
    load_environment,
    load_peer_accounts,
)


def write_peers(tmp_path, peers):
    path = tmp_path / "peering.yml"
    path.write_text(yaml.safe_dump({"peer_accounts": peers}))
    return path


def test_load_environment_reads_accounts_and_region():
    config = load_environment("pipeline", {
        "AWS_PIPELINE_ACCOUNT_ID": "999999999999",
        "AWS_REGION": "eu-central-1",
        "REQUESTER_VPC_ID": "vpc-0123456789abcdef0",
    })

    assert config.account == "999999999999"
    assert config.region == "eu-central-1"
    assert config.pipeline_account == "999999999999"
    assert config.requester_vpc_id == "vpc-0123456789abcdef0"


def test_load_environment_defaults_region():
    config = load_environment("development", {"AWS_ACCOUNT_ID_DEV": "111111111111"})

    assert config.region == "eu-west-1"
    assert config.env_name == "development"


def test_load_environment_requires_account_variable():
    with pytest.raises(ConfigurationError, match="AWS_ACCOUNT_ID_STAGING"):
        load_environment("staging", {})


def test_load_environment_rejects_bad_account_id():
    with pytest.raises(ConfigurationError, match="12-digit"):
        load_environment("production", {"AWS_ACCOUNT_ID_PROD": "12345"})


def test_load_environment_rejects_unknown_name():
    with pytest.raises(ConfigurationError, match="Unknown environment"):
        load_environment("qa", {})


def test_peer_role_arn_defaults_to_acceptor_role(tmp_path):
    path = write_peers(tmp_path, [
        {"env_name": "development", "account_id": "111111111111", "vpc_id": "vpc-0123456789abcdef0",
         "vpc_cidr": "10.1.0.0/16"},
    ])

    peers = load_peer_accounts(path)

    assert peers == [PeerAccountConfig(
        env_name="development",
        account_id="111111111111",
        vpc_id="vpc-0123456789abcdef0",
        vpc_cidr="10.1.0.0/16",
        role_arn="arn:aws:iam::111111111111:role/development-VpcPeeringAcceptorRole",
    )]


@pytest.mark.parametrize("override,message", [
    ({"vpc_cidr": "10.1.0.0/40"}, "vpc_cidr"),
    ({"vpc_cidr": "not-a-cidr"}, "vpc_cidr"),
    ({"vpc_id": "subnet-0123"}, "vpc_id"),
    ({"role_arn": "arn:aws:iam::222222222222:role/x"}, "must live in account"),
])
def test_invalid_peer_entries_are_rejected(tmp_path, override, message):
    peer = {"env_name": "development", "account_id": "111111111111",
            "vpc_id": "vpc-0123456789abcdef0", "vpc_cidr": "10.1.0.0/16", **override}

    with pytest.raises(ConfigurationError, match=message):
        load_peer_accounts(write_peers(tmp_path, [peer]))


def test_missing_key_is_reported(tmp_path):
    with pytest.raises(ConfigurationError, match="vpc_cidr"):
        load_peer_accounts(write_peers(tmp_path, [
            {"env_name": "development", "account_id": "111111111111", "vpc_id": "vpc-0123456789abcdef0"},
        ]))


def test_duplicate_peers_are_rejected(tmp_path):
    peer = {"env_name": "development", "account_id": "111111111111",
            "vpc_id": "vpc-0123456789abcdef0", "vpc_cidr": "10.1.0.0/16"}

    with pytest.raises(ConfigurationError, match="Duplicate"):
        load_peer_accounts(write_peers(tmp_path, [peer, peer]))


def test_missing_file_is_reported(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_peer_accounts(tmp_path / "missing.yml")


def test_shipped_peering_file_is_valid():
    peers = load_peer_accounts(DEFAULT_PEERING_FILE)

    assert [p.env_name for p in peers] == ["development", "staging", "production"]
    assert peers[0].role_arn == acceptor_role_arn("111111111111", "development")


def test_config_errors_do_not_depend_on_lambda_layer():
    import infra_cdk.environments as environments

    assert ConfigurationError.__module__ == "infra_cdk.environments"
    assert "peering_common" not in open(environments.__file__, encoding="utf-8").read()
