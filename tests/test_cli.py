"""Tests for the llmsettings CLI."""

from __future__ import annotations

from click.testing import CliRunner

from llmsettings.cli.main import cli
from llmsettings.client import SettingsFacade
from llmsettings.config import ClientConfig
from llmsettings.providers import (
    ModelsSyncResult,
    ProviderTestResult,
    TaskName,
)


def _invoke(transport, args, input=None):
    runner = CliRunner()
    obj = {
        "config": ClientConfig(),
        "facade_factory": lambda: SettingsFacade(transport),
    }
    return runner.invoke(cli, args, obj=obj, input=input)


def test_providers_list(transport):
    result = _invoke(transport, ["providers", "list"])
    assert result.exit_code == 0, result.output
    assert "A (a) [default]" in result.output
    assert "B (b)" in result.output
    assert "m1, m2" in result.output


def test_providers_presets(transport):
    result = _invoke(transport, ["providers", "presets"])
    assert result.exit_code == 0
    assert "OpenAI" in result.output
    assert transport.calls == []


def test_providers_add_from_preset(transport):
    result = _invoke(
        transport,
        ["providers", "add", "--type", "ollama", "--default"],
        input="\n",
    )
    assert result.exit_code == 0, result.output
    assert "Created Ollama (local)" in result.output
    _, draft = transport.calls[-1]
    assert draft.base_url == "http://localhost:11434/v1"
    assert draft.models == ["llama2", "mistral", "codellama", "phi"]
    assert draft.api_key is None
    assert draft.is_default


def test_providers_add_invalid(transport):
    result = _invoke(
        transport,
        [
            "providers",
            "add",
            "--type",
            "custom",
            "--base-url",
            "https://llm.local/v1",
            "--api-key",
            "",
        ],
    )
    assert result.exit_code == 1
    assert "At least one model is required" in result.output


def test_providers_update_merges_parameters(transport, make_provider):
    transport.providers["a"] = make_provider(
        "a",
        parameters={"temperature": 0.7, "max_tokens": 100},
    )
    result = _invoke(
        transport,
        ["providers", "update", "a", "--temperature", "0.2", "--disable"],
    )
    assert result.exit_code == 0, result.output
    _, _, patch = transport.calls[-1]
    assert patch.is_enabled is False
    assert patch.parameters.temperature == 0.2
    assert patch.parameters.max_tokens == 100


def test_providers_remove_requires_confirmation(transport):
    aborted = _invoke(transport, ["providers", "remove", "b"], input="n\n")
    assert aborted.exit_code == 1
    assert "b" in transport.providers

    result = _invoke(transport, ["providers", "remove", "b", "--yes"])
    assert result.exit_code == 0
    assert "b" not in transport.providers


def test_set_default_unknown(transport):
    result = _invoke(transport, ["providers", "set-default", "zzz"])
    assert result.exit_code == 1
    assert "Provider 'zzz' not found" in result.output


def test_set_default(transport):
    result = _invoke(transport, ["providers", "set-default", "b"])
    assert result.exit_code == 0
    assert transport.default_id == "b"


def test_providers_test_failure_exit_code(transport):
    transport.test_results["a:m1"] = [
        ProviderTestResult(success=False, message="Connection failed: timeout"),
    ]
    result = _invoke(transport, ["providers", "test", "a", "--model", "m1"])
    assert result.exit_code == 1
    assert "Connection failed: timeout" in result.output

    ok = _invoke(transport, ["providers", "test", "a"])
    assert ok.exit_code == 0
    assert "ok (5 ms)" in ok.output


def test_providers_sync(transport):
    transport.sync_results["b"] = ModelsSyncResult(
        success=True,
        models=["x", "y"],
    )
    result = _invoke(transport, ["providers", "sync", "b"])
    assert result.exit_code == 0
    assert "Models (2): x, y" in result.output
    assert transport.providers["b"].models == ["x", "y"]


def test_tasks_set_and_list(transport):
    result = _invoke(
        transport,
        [
            "tasks",
            "set",
            "resume_analysis",
            "--provider",
            "b",
            "--model",
            "m3",
            "--temperature",
            "0.1",
        ],
    )
    assert result.exit_code == 0, result.output
    stored = transport.task_configs[TaskName.RESUME_ANALYSIS]
    assert stored.provider_id == "b"
    assert stored.parameters.temperature == 0.1

    listed = _invoke(transport, ["tasks", "list"])
    assert listed.exit_code == 0
    assert "B / m3" in listed.output
    assert "question_generation" in listed.output


def test_tasks_set_rejects_unknown_provider(transport):
    result = _invoke(
        transport,
        ["tasks", "set", "resume_analysis", "--provider", "zzz"],
    )
    assert result.exit_code == 1
    assert "unknown provider" in result.output
    assert transport.task_configs == {}


def test_tasks_show_falls_back_to_default(transport):
    result = _invoke(transport, ["tasks", "show", "question_generation"])
    assert result.exit_code == 0
    assert '"provider_id": "a"' in result.output
    assert '"resolved": true' in result.output


def test_chat_loop(transport):
    result = _invoke(
        transport,
        ["chat", "a", "--model", "m2"],
        input="hello\n\n/exit\n",
    )
    assert result.exit_code == 0, result.output
    assert "A: echo[m2]: hello" in result.output
    chats = [c for c in transport.calls if c[0] == "chat"]
    assert chats == [("chat", "a", "hello", "m2")]


def test_chat_unknown_provider(transport):
    result = _invoke(transport, ["chat", "zzz"])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_out_of_range_parameters_are_usage_errors(transport):
    for args in (
        ["tasks", "set", "resume_analysis", "--temperature", "5"],
        ["tasks", "set", "resume_analysis", "--max-tokens", "0"],
        ["providers", "update", "a", "--timeout-ms=0"],
        ["providers", "add", "--type", "openai", "--temperature", "2.5"],
    ):
        result = _invoke(transport, args)
        assert result.exit_code == 2, args
        assert "Invalid value" in result.output
        assert result.exception is None or isinstance(
            result.exception,
            SystemExit,
        )
    assert transport.calls == []
