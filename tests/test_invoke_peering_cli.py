# tests/test_invoke_peering_cli.py
import json
from unittest.mock import patch

from cli import invoke_peering
from conftest import CONNECTION_ID


def test_build_event_includes_physical_id_only_when_given():
    assert invoke_peering.build_event("Create", {"A": "1"}) == {
        "RequestType": "Create",
        "ResourceProperties": {"A": "1"},
    }
    assert invoke_peering.build_event("Delete", {}, CONNECTION_ID)["PhysicalResourceId"] == CONNECTION_ID


@patch("lambdas.create_accept_peering.app.handler")
def test_main_invokes_selected_handler(mock_handler, capsys):
    mock_handler.return_value = {"PhysicalResourceId": CONNECTION_ID}

    exit_code = invoke_peering.main([
        "create-accept", "Delete", "--physical-id", CONNECTION_ID, "-p", "PeerRegion=eu-west-1",
    ])

    assert exit_code == 0
    mock_handler.assert_called_once_with({
        "RequestType": "Delete",
        "ResourceProperties": {"PeerRegion": "eu-west-1"},
        "PhysicalResourceId": CONNECTION_ID,
    }, None)
    assert json.dumps({"PhysicalResourceId": CONNECTION_ID}, indent=2) in capsys.readouterr().out


@patch("lambdas.update_peer_routes.app.handler", side_effect=RuntimeError("boom"))
def test_main_reports_handler_failure(mock_handler, tmp_path):
    properties = tmp_path / "props.json"
    properties.write_text(json.dumps({"VpcPeeringConnectionId": CONNECTION_ID}))

    exit_code = invoke_peering.main(["routes", "Create", "--properties-file", str(properties)])

    assert exit_code == 1
    assert mock_handler.call_args.args[0]["ResourceProperties"] == {"VpcPeeringConnectionId": CONNECTION_ID}


def test_main_rejects_malformed_property():
    assert invoke_peering.main(["accept", "Create", "-p", "no-equals-sign"]) == 2
