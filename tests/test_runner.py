"""
Tests for the tenant move run orchestration.

Covers the end-to-end scenarios: a clean move, an unknown device, an
ambiguous Autopilot registration, and failures in each fatal phase.
"""

from unittest.mock import Mock

import httpx
import pytest
from azure.core.exceptions import ClientAuthenticationError

from autopilot_tenant_move.config_manager import TenantMoveConfig
from autopilot_tenant_move.exceptions import RemoteWipeError
from autopilot_tenant_move.models import RunStatus
from autopilot_tenant_move.runner import TenantMoveRunner, run_tenant_move

SECRET_LINE = "<![LOG[$secret = 'mock-secret-value']LOG]>\n"
CLEAN_LINE = "<![LOG[Agent started]LOG]>\n"


@pytest.fixture
def run_paths(tmp_path):
    source_dir = tmp_path / "script"
    source_dir.mkdir()
    (source_dir / "AutopilotConfigurationFile.json").write_text("{}", encoding="utf-8")
    ime_log = tmp_path / "IntuneManagementExtension.log"
    ime_log.write_text(CLEAN_LINE + SECRET_LINE, encoding="utf-8")
    return {
        "source_dir": source_dir,
        "provisioning_dir": tmp_path / "Provisioning" / "Autopilot",
        "ime_log": ime_log,
    }


@pytest.fixture
def config(run_paths, monkeypatch):
    monkeypatch.setenv("ATM_PROVISIONING_DIR", str(run_paths["provisioning_dir"]))
    monkeypatch.setenv("ATM_IME_LOG_PATH", str(run_paths["ime_log"]))
    return TenantMoveConfig.from_environment(
        device_name="PC01", source_dir=str(run_paths["source_dir"])
    )


@pytest.fixture
def wipe_trigger():
    trigger = Mock()
    trigger.trigger.return_value = True
    return trigger


@pytest.fixture
def make_runner(fake_graph, mock_credential, wipe_trigger):
    def _make(config, credential=None):
        return TenantMoveRunner(
            config,
            credential=credential or mock_credential,
            transport=fake_graph.transport,
            wipe_trigger=wipe_trigger,
            sleep=lambda seconds: None,
        )

    return _make


@pytest.fixture
def device_found(fake_graph, graph_paths, device_payload):
    fake_graph.add_json(
        "GET",
        graph_paths["managed_devices"],
        {"@odata.count": 1, "value": [device_payload("abc", "PC01", "SN1")]},
    )
    fake_graph.add("DELETE", "/v1.0/deviceManagement/managedDevices/abc", httpx.Response(204))


def test_full_move_deletes_records_sanitizes_and_wipes(
    config,
    run_paths,
    make_runner,
    fake_graph,
    graph_paths,
    device_found,
    registration_payload,
    wipe_trigger,
):
    fake_graph.add_json(
        "GET",
        graph_paths["autopilot_devices"],
        {"@odata.count": 1, "value": [registration_payload("reg-1", "SN1")]},
    )
    fake_graph.add("DELETE", f"{graph_paths['autopilot_devices']}/reg-1", httpx.Response(200))
    fake_graph.add("POST", graph_paths["autopilot_sync"], httpx.Response(204))

    result = make_runner(config).run()

    assert result.status == RunStatus.COMPLETED
    assert result.exit_code == 0
    assert result.config_staged is True
    assert (run_paths["provisioning_dir"] / "AutopilotConfigurationFile.json").is_file()
    assert fake_graph.calls() == [
        ("GET", graph_paths["managed_devices"]),
        ("DELETE", "/v1.0/deviceManagement/managedDevices/abc"),
        ("GET", graph_paths["autopilot_devices"]),
        ("DELETE", f"{graph_paths['autopilot_devices']}/reg-1"),
        ("POST", graph_paths["autopilot_sync"]),
    ]
    assert result.sanitized_lines == 1
    assert run_paths["ime_log"].read_text(encoding="utf-8") == CLEAN_LINE
    wipe_trigger.trigger.assert_called_once()
    assert result.wipe_invoked is True
    assert result.completed_at >= result.started_at


def test_unknown_device_exits_1_without_further_calls(
    config, run_paths, make_runner, fake_graph, graph_paths, wipe_trigger
):
    fake_graph.add_json("GET", graph_paths["managed_devices"], {"@odata.count": 0})

    result = make_runner(config).run()

    assert result.exit_code == 1
    assert result.error_code == "DEVICE_RESOLUTION_FAILED"
    assert fake_graph.calls() == [("GET", graph_paths["managed_devices"])]
    assert SECRET_LINE in run_paths["ime_log"].read_text(encoding="utf-8")
    wipe_trigger.trigger.assert_not_called()


def test_ambiguous_registration_continues_to_sanitize_and_wipe(
    config,
    run_paths,
    make_runner,
    fake_graph,
    graph_paths,
    device_found,
    registration_payload,
    wipe_trigger,
):
    fake_graph.add_json(
        "GET",
        graph_paths["autopilot_devices"],
        {
            "@odata.count": 2,
            "value": [registration_payload("reg-1"), registration_payload("reg-2")],
        },
    )

    result = make_runner(config).run()

    assert result.exit_code == 0
    assert result.registration is None
    assert result.sync_triggered is False
    assert ("POST", graph_paths["autopilot_sync"]) not in fake_graph.calls()
    assert run_paths["ime_log"].read_text(encoding="utf-8") == CLEAN_LINE
    wipe_trigger.trigger.assert_called_once()


def test_missing_config_file_fails_before_authenticating(
    config, run_paths, make_runner, fake_graph, mock_credential
):
    (run_paths["source_dir"] / "AutopilotConfigurationFile.json").unlink()

    result = make_runner(config).run()

    assert result.exit_code == 1
    assert result.error_code == "CONFIG_STAGING_FAILED"
    mock_credential.get_token.assert_not_called()
    assert fake_graph.requests == []


def test_authentication_failure_fails_before_graph_calls(
    config, make_runner, fake_graph, wipe_trigger
):
    credential = Mock()
    credential.get_token.side_effect = ClientAuthenticationError("invalid_client")

    result = make_runner(config, credential=credential).run()

    assert result.exit_code == 1
    assert result.error_code == "GRAPH_AUTH_FAILED"
    assert fake_graph.requests == []
    wipe_trigger.trigger.assert_not_called()


def test_graph_failure_is_fatal(config, make_runner, fake_graph, graph_paths, wipe_trigger):
    fake_graph.add_json("GET", graph_paths["managed_devices"], {}, status_code=500)

    result = make_runner(config).run()

    assert result.status == RunStatus.FAILED
    assert result.error_code == "GRAPH_REQUEST_FAILED"
    wipe_trigger.trigger.assert_not_called()


def test_wipe_failure_is_fatal(
    config, make_runner, fake_graph, graph_paths, device_found, wipe_trigger
):
    fake_graph.add_json("GET", graph_paths["autopilot_devices"], {"value": []})
    wipe_trigger.trigger.side_effect = RemoteWipeError("Remote wipe invocation failed")

    result = make_runner(config).run()

    assert result.exit_code == 1
    assert result.error_code == "REMOTE_WIPE_FAILED"
    assert result.device_deleted is True
    assert result.wipe_invoked is False


def test_dry_run_changes_nothing(
    run_paths, monkeypatch, make_runner, fake_graph, graph_paths, device_found
):
    monkeypatch.setenv("ATM_PROVISIONING_DIR", str(run_paths["provisioning_dir"]))
    monkeypatch.setenv("ATM_IME_LOG_PATH", str(run_paths["ime_log"]))
    dry_config = TenantMoveConfig.from_environment(
        device_name="PC01", source_dir=str(run_paths["source_dir"]), dry_run=True
    )
    fake_graph.add_json("GET", graph_paths["autopilot_devices"], {"value": []})

    runner = TenantMoveRunner(
        dry_config,
        credential=Mock(get_token=Mock(return_value=Mock(token="t"))),
        transport=fake_graph.transport,
        sleep=lambda seconds: None,
    )
    result = runner.run()

    assert result.exit_code == 0
    assert result.config_staged is False
    assert not run_paths["provisioning_dir"].exists()
    assert [method for method, _ in fake_graph.calls()] == ["GET", "GET"]
    assert SECRET_LINE in run_paths["ime_log"].read_text(encoding="utf-8")
    assert result.wipe_invoked is False


def test_run_tenant_move_returns_exit_code(config, fake_graph, graph_paths, mock_credential):
    fake_graph.add_json("GET", graph_paths["managed_devices"], {"@odata.count": 3, "value": []})

    exit_code = run_tenant_move(
        config, credential=mock_credential, transport=fake_graph.transport
    )

    assert exit_code == 1


def test_result_to_dict_has_no_secret(config, make_runner, fake_graph, graph_paths):
    fake_graph.add_json("GET", graph_paths["managed_devices"], {"@odata.count": 0})

    payload = make_runner(config).run().to_dict()

    assert payload["exit_code"] == 1
    assert payload["status"] == "failed"
    assert "mock-secret-value" not in str(payload)
