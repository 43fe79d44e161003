"""Tests for SettingsFacade against an in-memory backend."""

from __future__ import annotations

import asyncio

import pytest

from llmsettings.client import SettingsFacade
from llmsettings.config import ClientConfig
from llmsettings.errors import (
    InvalidConfigError,
    ProviderNotFoundError,
    RemoteCallError,
)
from llmsettings.providers import (
    ModelsSyncResult,
    ProviderCreateRequest,
    ProviderTestResult,
    ProviderType,
    ProviderUpdateRequest,
    TaskConfig,
    TaskName,
)


async def _wait_until(predicate, attempts: int = 50) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


def _default_ids(facade: SettingsFacade):
    return [p.provider_id for p in facade.providers if p.is_default]


# ---------------------------------------------------------------------------
# Provider list / default pointer
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_providers_loads_registry_and_default(facade):
    assert not facade.state.providers_loaded
    providers = await facade.list_providers()
    assert [p.provider_id for p in providers] == ["a", "b"]
    assert facade.default_provider.provider_id == "a"
    assert facade.state.providers_loaded
    assert not facade.providers_loading


@pytest.mark.asyncio
async def test_repeated_set_default_keeps_single_default(facade):
    await facade.list_providers()
    await facade.set_default_provider("b")
    await facade.set_default_provider("a")
    await facade.set_default_provider("b")
    assert _default_ids(facade) == ["b"]
    assert facade.default_provider.provider_id == "b"


@pytest.mark.asyncio
async def test_set_default_unknown_provider_is_local_error(facade, transport):
    await facade.list_providers()
    with pytest.raises(ProviderNotFoundError):
        await facade.set_default_provider("zzz")
    assert "set_default_provider" not in transport.call_names()
    assert facade.providers_error is None


@pytest.mark.asyncio
async def test_delete_default_leaves_no_default(facade):
    await facade.list_providers()
    await facade.delete_provider("a")
    assert facade.default_provider is None
    assert _default_ids(facade) == []
    assert [p.provider_id for p in facade.providers] == ["b"]


@pytest.mark.asyncio
async def test_delete_non_default_keeps_default(facade):
    await facade.list_providers()
    await facade.delete_provider("b")
    assert facade.default_provider.provider_id == "a"


@pytest.mark.asyncio
async def test_create_as_default_updates_pointer_immediately(facade):
    await facade.list_providers()
    created = await facade.create_provider(
        ProviderCreateRequest(
            name="Local",
            type=ProviderType.OLLAMA,
            base_url="http://localhost:11434/v1",
            models=["llama2"],
            is_default=True,
        ),
    )
    assert created.is_default
    assert facade.default_provider.provider_id == created.provider_id
    assert _default_ids(facade) == [created.provider_id]


@pytest.mark.asyncio
async def test_invalid_draft_is_rejected_before_remote_call(facade, transport):
    with pytest.raises(InvalidConfigError):
        await facade.create_provider(
            ProviderCreateRequest(
                name="",
                type=ProviderType.OPENAI,
                base_url="https://api.openai.com/v1",
                models=["gpt-4"],
            ),
        )
    assert transport.calls == []
    assert facade.providers_error is None


@pytest.mark.asyncio
async def test_blank_api_key_is_not_sent(facade, transport):
    await facade.list_providers()
    await facade.update_provider(
        "a",
        ProviderUpdateRequest(name="Renamed", api_key="   "),
    )
    _, provider_id, patch = transport.calls[-1]
    assert provider_id == "a"
    assert patch.api_key is None
    assert facade.get_provider("a").name == "Renamed"


@pytest.mark.asyncio
async def test_update_unknown_provider_returns_none(facade):
    assert await facade.update_provider("nope", ProviderUpdateRequest()) is None


# ---------------------------------------------------------------------------
# Error / loading flags
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_failed_list_sets_error_and_success_clears_it(facade, transport):
    transport.fail["list_providers"] = RemoteCallError("backend down")
    with pytest.raises(RemoteCallError):
        await facade.list_providers()
    assert facade.providers_error == "backend down"
    assert not facade.providers_loading
    assert not facade.state.providers_loaded

    del transport.fail["list_providers"]
    await facade.list_providers()
    assert facade.providers_error is None


@pytest.mark.asyncio
async def test_task_config_error_is_separate(facade, transport):
    transport.fail["list_task_configs"] = RemoteCallError("nope")
    with pytest.raises(RemoteCallError):
        await facade.fetch_task_configs()
    assert facade.task_configs_error == "nope"
    assert facade.providers_error is None
    facade.clear_error()
    assert facade.task_configs_error is None


@pytest.mark.asyncio
async def test_loading_flag_is_set_while_request_runs(facade, transport):
    seen = []
    original = transport.list_providers

    async def _list():
        seen.append(facade.providers_loading)
        return await original()

    transport.list_providers = _list
    await facade.list_providers()
    assert seen == [True]
    assert not facade.providers_loading


# ---------------------------------------------------------------------------
# Connectivity probes
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_probe_results_are_cached_per_key(facade, transport):
    await facade.list_providers()
    transport.test_results["a:m1"] = [
        ProviderTestResult(success=False, message="Connection failed: timeout"),
    ]
    ok = await facade.test_provider("a")
    failed = await facade.test_provider("a", "m1")

    assert ok.success
    assert not failed.success
    assert facade.get_test_result("a").success
    assert facade.get_test_result("a", "m1").message.endswith("timeout")
    assert facade.get_test_result("a", "m2") is None
    assert set(facade.state.test_results) == {"a:default", "a:m1"}


@pytest.mark.asyncio
async def test_rejected_probe_is_not_cached(facade, transport):
    await facade.list_providers()
    transport.fail["test_provider"] = RemoteCallError("gateway")
    with pytest.raises(RemoteCallError):
        await facade.test_provider("a")
    assert facade.get_test_result("a") is None
    assert facade.providers_error == "gateway"
    assert not facade.is_testing("a")


@pytest.mark.asyncio
async def test_probe_uses_provider_timeout(facade, transport, make_provider):
    transport.providers["a"] = make_provider(
        "a",
        parameters={"timeout_ms": 2000},
    )
    await facade.list_providers()
    await facade.test_provider("a")
    assert transport.calls[-1][-1] == pytest.approx(7.0)


@pytest.mark.asyncio
async def test_in_flight_probes_are_tracked_per_key(facade, transport):
    await facade.list_providers()
    gate_a, gate_b = asyncio.Event(), asyncio.Event()
    transport.test_gates["a:m1"] = [gate_a]
    transport.test_gates["b:default"] = [gate_b]

    first = asyncio.create_task(facade.test_provider("a", "m1"))
    second = asyncio.create_task(facade.test_provider("b"))
    await _wait_until(lambda: len(facade.testing_keys) == 2)
    assert facade.testing_keys == {"a:m1", "b:default"}
    assert facade.is_testing("a")

    gate_b.set()
    await second
    assert facade.testing_keys == {"a:m1"}
    assert facade.get_test_result("b") is not None
    assert facade.get_test_result("a", "m1") is None

    gate_a.set()
    await first
    assert facade.testing_keys == frozenset()
    assert not facade.is_testing("a")


@pytest.mark.asyncio
async def test_overlapping_probes_last_completion_wins(facade, transport):
    await facade.list_providers()
    slow, fast = asyncio.Event(), asyncio.Event()
    transport.test_results["a:default"] = [
        ProviderTestResult(success=False, message="old"),
        ProviderTestResult(success=True, message="new"),
    ]
    transport.test_gates["a:default"] = [slow, fast]

    older = asyncio.create_task(facade.test_provider("a"))
    newer = asyncio.create_task(facade.test_provider("a"))
    await _wait_until(lambda: len(transport.calls) == 4)
    fast.set()
    await newer
    slow.set()
    await older
    assert facade.get_test_result("a").message == "old"


@pytest.mark.asyncio
async def test_stale_probe_completion_can_be_discarded(transport):
    facade = SettingsFacade(
        transport,
        config=ClientConfig(discard_stale_results=True),
    )
    await facade.list_providers()
    slow, fast = asyncio.Event(), asyncio.Event()
    transport.test_results["a:default"] = [
        ProviderTestResult(success=False, message="old"),
        ProviderTestResult(success=True, message="new"),
    ]
    transport.test_gates["a:default"] = [slow, fast]

    older = asyncio.create_task(facade.test_provider("a"))
    newer = asyncio.create_task(facade.test_provider("a"))
    await _wait_until(lambda: len(transport.calls) == 4)
    fast.set()
    await newer
    slow.set()
    stale = await older
    assert stale.message == "old"
    assert facade.get_test_result("a").message == "new"


# ---------------------------------------------------------------------------
# Model sync / chat
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_sync_replaces_models(facade, transport):
    await facade.list_providers()
    transport.sync_results["a"] = ModelsSyncResult(
        success=True,
        models=["x", "y"],
    )
    models = await facade.sync_models("a")
    assert models == ["x", "y"]
    assert facade.get_provider("a").models == ["x", "y"]
    assert transport.call_names()[-3:] == [
        "sync_models",
        "list_providers",
        "get_default_provider",
    ]


@pytest.mark.asyncio
async def test_failed_sync_leaves_models(facade, transport):
    await facade.list_providers()
    models = await facade.sync_models("a")
    assert models == []
    assert facade.get_provider("a").models == ["m1", "m2"]
    assert transport.call_names()[-1] == "sync_models"


@pytest.mark.asyncio
async def test_chat_is_pass_through(facade, transport):
    reply = await facade.chat("a", "hello", "m1")
    assert reply == "echo[m1]: hello"
    assert transport.calls[-1] == ("chat", "a", "hello", "m1")


# ---------------------------------------------------------------------------
# Task configs
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_update_task_config_applies_locally(facade):
    await facade.list_providers()
    config = TaskConfig(
        task_name=TaskName.RESUME_ANALYSIS,
        provider_id="b",
        model="m3",
    )
    await facade.update_task_config(config)
    assert facade.get_task_config(TaskName.RESUME_ANALYSIS) == config
    resolved = facade.resolve_task(TaskName.RESUME_ANALYSIS)
    assert resolved.provider.provider_id == "b"
    assert resolved.model == "m3"


@pytest.mark.asyncio
async def test_task_config_validation(facade, transport):
    await facade.list_providers()
    with pytest.raises(InvalidConfigError):
        await facade.update_task_config(
            TaskConfig(task_name=TaskName.RESUME_ANALYSIS, provider_id="zzz"),
        )
    with pytest.raises(InvalidConfigError):
        await facade.update_task_config(
            TaskConfig(
                task_name=TaskName.RESUME_ANALYSIS,
                provider_id="b",
                model="m1",
            ),
        )
    assert "update_task_config" not in transport.call_names()


@pytest.mark.asyncio
async def test_deleted_provider_binding_falls_back(facade):
    await facade.list_providers()
    await facade.update_task_config(
        TaskConfig(task_name=TaskName.QUESTION_GENERATION, provider_id="b"),
    )
    await facade.delete_provider("b")
    resolved = facade.resolve_task(TaskName.QUESTION_GENERATION)
    assert resolved.provider.provider_id == "a"
    assert facade.get_task_config(TaskName.QUESTION_GENERATION).provider_id == "b"


@pytest.mark.asyncio
async def test_fetch_task_configs(facade, transport):
    transport.task_configs[TaskName.RESUME_OPTIMIZATION] = TaskConfig(
        task_name=TaskName.RESUME_OPTIMIZATION,
        model="m2",
    )
    configs = await facade.fetch_task_configs()
    assert list(configs) == [TaskName.RESUME_OPTIMIZATION]
    single = await facade.fetch_task_config(TaskName.RESUME_ANALYSIS)
    assert single.provider_id is None
    assert facade.state.task_configs_loaded


# ---------------------------------------------------------------------------
# Observers
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_subscribers_are_notified(facade):
    events = []
    unsubscribe = facade.subscribe(events.append)
    await facade.list_providers()
    await facade.test_provider("a")
    unsubscribe()
    await facade.list_providers()
    assert events == ["providers", "test_results"]


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_apply(facade):
    def _boom(concern):
        raise RuntimeError(concern)

    facade.subscribe(_boom)
    await facade.list_providers()
    assert facade.default_provider.provider_id == "a"


@pytest.mark.asyncio
async def test_context_manager_closes_transport(transport):
    async with SettingsFacade(transport) as facade:
        await facade.list_providers()
    assert transport.closed
