"""End-to-end runs through the workflow runner."""

import logging

import httpx
import pytest

from nodeflow.core.config import get_settings
from nodeflow.core.exceptions import StructuralError
from nodeflow.engine.fault_handler import FaultHandler
from nodeflow.engine.types import ExecutionEventType, NodeStatus, RunStatus
from nodeflow.engine.workflow_runner import WorkflowRunner
from tests.conftest import make_graph


def status_of(result, node_id):
    return result.record_for(node_id).status


def branch_graph():
    return make_graph(
        [
            ("t", "manual_trigger"),
            ("s", "set", {"fields": {"x": "{{input.x}}"}}),
            ("c", "if_else", {"condition": "{{input.x}} > 3"}),
            ("big", "log", {"message": "big"}),
            ("small", "log", {"message": "small"}),
        ],
        [("t", "s"), ("s", "c"), ("c", "big", "true"), ("c", "small", "false")],
    )


class TestBranching:

    @pytest.mark.asyncio
    async def test_true_branch(self, runner, caplog):
        with caplog.at_level(logging.INFO, logger="nodeflow"):
            result = await runner.run(branch_graph(), {"x": 5})
        assert result.status == RunStatus.SUCCESS
        assert status_of(result, "big") == NodeStatus.SUCCESS
        assert status_of(result, "small") == NodeStatus.SKIPPED
        assert result.output["logged"] == "big"
        logged = [r.getMessage() for r in caplog.records if r.name.endswith("log_output")]
        assert logged == ["[big] big"]

    @pytest.mark.asyncio
    async def test_false_branch(self, runner):
        result = await runner.run(branch_graph(), {"x": 2})
        assert status_of(result, "big") == NodeStatus.SKIPPED
        assert status_of(result, "small") == NodeStatus.SUCCESS
        assert result.output["logged"] == "small"

    @pytest.mark.asyncio
    async def test_outputs_carry_upstream_fields(self, runner):
        result = await runner.run(branch_graph(), {"x": 5})
        assert result.record_for("s").output["x"] == 5
        assert result.record_for("c").output["condition"] is True
        assert result.record_for("t").output["trigger"] == "manual"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("x, logged", [(5, "big"), (2, "small")])
    async def test_set_value_drives_branch(self, runner, x, logged):
        graph = make_graph(
            [
                ("t", "manual_trigger"),
                ("s", "set", {"fields": {"x": x}}),
                ("c", "if_else", {"condition": "{{input.x}} > 3"}),
                ("big", "log", {"message": "big"}),
                ("small", "log", {"message": "small"}),
            ],
            [("t", "s"), ("s", "c"), ("c", "big", "true"), ("c", "small", "false")],
        )
        result = await runner.run(graph, {})
        assert result.status == RunStatus.SUCCESS
        assert result.output["logged"] == logged
        skipped = "small" if logged == "big" else "big"
        assert status_of(result, skipped) == NodeStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_numeric_text_input_takes_numeric_branch(self, runner):
        result = await runner.run(branch_graph(), {"x": "5"})
        assert result.record_for("c").output["condition"] is True
        assert result.output["logged"] == "big"

    @pytest.mark.asyncio
    async def test_switch_routes_first_match(self, runner):
        graph = make_graph(
            [
                ("t", "manual_trigger"),
                ("sw", "switch", {"expression": "{{input.status}}", "cases": ["active", "inactive"]}),
                ("on", "noop"),
                ("off", "noop"),
                ("other", "noop"),
            ],
            [("t", "sw"), ("sw", "on", "active"), ("sw", "off", "inactive"), ("sw", "other", "default")],
        )
        result = await runner.run(graph, {"status": "inactive"})
        assert [status_of(result, n) for n in ("on", "off", "other")] == [
            NodeStatus.SKIPPED, NodeStatus.SUCCESS, NodeStatus.SKIPPED,
        ]

        result = await runner.run(graph, {"status": "archived"})
        assert status_of(result, "other") == NodeStatus.SUCCESS
        assert result.record_for("sw").output["matchedCase"] is None

    @pytest.mark.asyncio
    async def test_switch_without_default_warns(self, runner):
        graph = make_graph(
            [("t", "manual_trigger"), ("sw", "switch", {"expression": "{{input.v}}", "cases": ["a"]}), ("a", "noop")],
            [("t", "sw"), ("sw", "a", "a")],
        )
        result = await runner.run(graph, {"v": "zzz"})
        assert result.status == RunStatus.SUCCESS
        assert status_of(result, "a") == NodeStatus.SKIPPED
        assert any("no matching outgoing edge" in w for w in result.warnings)

    @pytest.mark.asyncio
    async def test_diamond_join_runs_through_live_branch(self, runner):
        graph = make_graph(
            [
                ("t", "manual_trigger"),
                ("c", "if_else", {"condition": "{{input.go}}"}),
                ("yes", "set", {"fields": {"branch": "yes"}}),
                ("no", "set", {"fields": {"branch": "no"}}),
                ("join", "noop"),
            ],
            [("t", "c"), ("c", "yes", "true"), ("c", "no", "false"), ("yes", "join"), ("no", "join")],
        )
        result = await runner.run(graph, {"go": True})
        assert status_of(result, "join") == NodeStatus.SUCCESS
        assert result.record_for("join").input["branch"] == "yes"


class TestMerge:

    def graph(self, **config):
        return make_graph(
            [
                ("t", "manual_trigger"),
                ("a", "set", {"fields": {"a": 1}, "keepOnlySet": True}),
                ("b", "set", {"fields": {"b": 2}, "keepOnlySet": True}),
                ("m", "merge", config),
            ],
            [("t", "a"), ("t", "b"), ("a", "m"), ("b", "m")],
        )

    @pytest.mark.asyncio
    async def test_merge_objects(self, runner):
        result = await runner.run(self.graph(mode="merge"))
        assert result.output == {"a": 1, "b": 2}

    @pytest.mark.asyncio
    async def test_wait_all_keys_by_source(self, runner):
        result = await runner.run(self.graph(mode="wait_all"))
        assert result.output == {"a": {"a": 1}, "b": {"b": 2}}

    @pytest.mark.asyncio
    async def test_append(self, runner):
        result = await runner.run(self.graph(mode="append"))
        assert result.output == [{"a": 1}, {"b": 2}]

    @pytest.mark.asyncio
    async def test_join_all_skips_when_a_branch_is_dead(self, runner):
        graph = make_graph(
            [
                ("t", "manual_trigger"),
                ("c", "if_else", {"condition": "{{input.x}} > 3"}),
                ("hi", "noop"),
                ("lo", "noop"),
                ("m", "merge", {"join": "all"}),
                ("m_any", "merge", {"join": "any"}),
            ],
            [
                ("t", "c"), ("c", "hi", "true"), ("c", "lo", "false"),
                ("hi", "m"), ("lo", "m"), ("hi", "m_any"), ("lo", "m_any"),
            ],
        )
        result = await runner.run(graph, {"x": 5})
        assert status_of(result, "m") == NodeStatus.SKIPPED
        assert status_of(result, "m_any") == NodeStatus.SUCCESS


class TestLoops:

    def graph(self, max_iterations=5):
        return make_graph(
            [
                ("t", "manual_trigger"),
                ("loop", "loop", {"array": "{{input.items}}", "maxIterations": max_iterations}),
                ("fmt", "text_formatter", {"template": "item {{item}} #{{index}}"}),
                ("after", "noop"),
            ],
            [("t", "loop"), ("loop", "fmt", "loop"), ("fmt", "loop"), ("loop", "after", "done")],
        )

    @pytest.mark.asyncio
    async def test_iterations_capped_by_max(self, runner):
        result = await runner.run(self.graph(), {"items": [1, 2, 3, 4, 5, 6, 7]})
        assert result.status == RunStatus.SUCCESS
        loop_output = result.record_for("loop").output
        assert loop_output["count"] == 5
        assert loop_output["total"] == 7
        assert [r["formatted"] for r in loop_output["results"]] == [f"item {i} #{i - 1}" for i in range(1, 6)]
        assert result.record_for("fmt").iterations == 5
        assert status_of(result, "after") == NodeStatus.SUCCESS
        assert result.record_for("after").input["count"] == 5

    @pytest.mark.asyncio
    async def test_global_ceiling(self, registry, sleeper, monkeypatch):
        monkeypatch.setenv("NODEFLOW_MAX_LOOP_ITERATIONS", "2")
        get_settings.cache_clear()
        try:
            runner = WorkflowRunner(registry=registry, fault_handler=FaultHandler(sleep=sleeper))
            result = await runner.run(self.graph(max_iterations=100), {"items": list(range(10))})
        finally:
            get_settings.cache_clear()
        assert result.record_for("loop").output["count"] == 2

    @pytest.mark.asyncio
    async def test_body_outputs_do_not_leak(self, runner):
        graph = make_graph(
            [
                ("t", "manual_trigger"),
                ("loop", "loop", {"array": "{{input.rows}}"}),
                ("tag", "set", {"fields": {"seen": "{{nodes.tag.seen}}", "name": "{{item.name}}"}}),
            ],
            [("t", "loop"), ("loop", "tag", "loop")],
        )
        result = await runner.run(graph, {"rows": [{"name": "a"}, {"name": "b"}]})
        results = result.record_for("loop").output["results"]
        assert [r["name"] for r in results] == ["a", "b"]
        # Each iteration starts with a fresh output layer
        assert [r["seen"] for r in results] == ["", ""]

    @pytest.mark.asyncio
    async def test_split_in_batches(self, runner):
        graph = make_graph(
            [
                ("t", "manual_trigger"),
                ("batches", "split_in_batches", {"array": "{{input.items}}", "batchSize": 2}),
                ("size", "set", {"fields": {"size": "{{len(item)}}"}, "keepOnlySet": True}),
            ],
            [("t", "batches"), ("batches", "size", "loop")],
        )
        result = await runner.run(graph, {"items": [1, 2, 3, 4, 5]})
        output = result.record_for("batches").output
        assert [r["size"] for r in output["results"]] == [2, 2, 1]
        assert output["totalItems"] == 5

    @pytest.mark.asyncio
    async def test_failure_in_body_fails_loop(self, runner, flaky):
        flaky.failures = 100
        flaky.permanent = True
        graph = make_graph(
            [("t", "manual_trigger"), ("loop", "loop", {"array": "{{input.items}}"}), ("call", "flaky")],
            [("t", "loop"), ("loop", "call", "loop")],
        )
        result = await runner.run(graph, {"items": [1, 2]})
        assert result.status == RunStatus.FAILED
        assert result.error["nodeId"] == "call"
        assert status_of(result, "loop") == NodeStatus.FAILED

    @pytest.mark.asyncio
    async def test_nested_loops(self, runner):
        graph = make_graph(
            [
                ("t", "manual_trigger"),
                ("outer", "loop", {"array": "{{input.groups}}"}),
                ("inner", "loop", {"array": "{{item}}"}),
                ("fmt", "text_formatter", {"template": "{{item}}@{{index}}"}),
                ("after", "noop"),
            ],
            [
                ("t", "outer"),
                ("outer", "inner", "loop"),
                ("inner", "fmt", "loop"),
                ("fmt", "inner"),
                ("inner", "outer"),
                ("outer", "after", "done"),
            ],
        )
        result = await runner.run(graph, {"groups": [[1, 2], [3]]})
        assert result.status == RunStatus.SUCCESS
        groups = result.record_for("outer").output["results"]
        assert [[r["formatted"] for r in g["results"]] for g in groups] == [["1@0", "2@1"], ["3@0"]]
        assert result.record_for("inner").iterations == 2
        assert result.record_for("fmt").iterations == 3
        assert result.record_for("after").input["count"] == 2

    @pytest.mark.asyncio
    async def test_duplicate_edge_ids_are_rejected(self, runner):
        graph = {
            "nodes": [{"id": "t", "kind": "manual_trigger"}, {"id": "loop", "kind": "loop"}, {"id": "b", "kind": "noop"}],
            "edges": [
                {"id": "e1", "source": "t", "target": "loop"},
                {"id": "e2", "source": "loop", "target": "b", "label": "loop"},
                {"id": "e1", "source": "b", "target": "loop"},
            ],
        }
        with pytest.raises(StructuralError) as exc_info:
            await runner.run(graph, {"items": [1, 2]})
        assert exc_info.value.issues[0]["kind"] == "duplicate_edge"

    @pytest.mark.asyncio
    async def test_generated_edge_id_does_not_shadow_back_edge(self, runner):
        graph = {
            "nodes": [{"id": "t", "kind": "manual_trigger"}, {"id": "loop", "kind": "loop"}, {"id": "b", "kind": "noop"}],
            "edges": [
                {"source": "t", "target": "loop"},
                {"id": "e2", "source": "loop", "target": "b", "label": "loop"},
                {"id": "e0", "source": "b", "target": "loop"},
            ],
        }
        result = await runner.run(graph, {"items": [1, 2]})
        assert result.status == RunStatus.SUCCESS
        assert result.record_for("loop").output["count"] == 2
        assert result.record_for("b").iterations == 2


class TestFaultHandling:

    def wrapped(self, **handler_config):
        return make_graph(
            [
                ("t", "manual_trigger"),
                ("eh", "error_handler", {"retryDelay": 10, **handler_config}),
                ("call", "flaky"),
                ("next", "noop"),
            ],
            [("t", "eh"), ("eh", "call"), ("call", "next")],
        )

    @pytest.mark.asyncio
    async def test_retries_until_success(self, runner, flaky, sleeper):
        flaky.failures = 2
        result = await runner.run(self.wrapped(maxRetries=3))
        record = result.record_for("call")
        assert result.status == RunStatus.SUCCESS
        assert record.attempts == 3
        assert record.output["ok"] is True and record.output["attempt"] == 3
        assert record.fallback is False
        assert sleeper.delays == [0.01, 0.01]

    @pytest.mark.asyncio
    async def test_exhausted_retries_use_fallback(self, runner, flaky):
        flaky.failures = 10
        result = await runner.run(self.wrapped(maxRetries=2, fallbackValue='{"status": "fallback"}'))
        record = result.record_for("call")
        assert result.status == RunStatus.SUCCESS
        assert record.status == NodeStatus.SUCCESS
        assert record.attempts == 3
        assert record.fallback is True
        assert record.error["kind"] == "transient"
        assert record.output == {"status": "fallback"}
        assert result.record_for("next").input == {"status": "fallback"}

    @pytest.mark.asyncio
    async def test_permanent_error_skips_retries(self, runner, flaky, sleeper):
        flaky.failures = 1
        flaky.permanent = True
        result = await runner.run(self.wrapped(maxRetries=3, fallbackValue="n/a"))
        record = result.record_for("call")
        assert record.attempts == 1
        assert record.output == "n/a"
        assert sleeper.delays == []

    @pytest.mark.asyncio
    async def test_unwrapped_failure_fails_run(self, runner, flaky):
        flaky.failures = 1
        graph = make_graph(
            [("t", "manual_trigger"), ("a", "set", {"fields": {"step": 1}}), ("call", "flaky"), ("z", "noop")],
            [("t", "a"), ("a", "call"), ("call", "z")],
        )
        result = await runner.run(graph)
        assert result.status == RunStatus.FAILED
        assert result.error == {
            "kind": "transient",
            "message": "flaky failure #1",
            "nodeId": "call",
            "context": {},
        }
        assert status_of(result, "z") == NodeStatus.SKIPPED
        # Earlier outputs stay visible
        assert result.record_for("a").output["step"] == 1

    @pytest.mark.asyncio
    async def test_validation_error_is_never_retried(self, runner):
        graph = make_graph(
            [("t", "manual_trigger"), ("eh", "error_handler"), ("fmt", "text_formatter", {"template": ""})],
            [("t", "eh"), ("eh", "fmt")],
        )
        result = await runner.run(graph)
        assert result.status == RunStatus.FAILED
        assert result.error["kind"] == "validation"
        assert result.error["nodeId"] == "fmt"

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self, runner):
        graph = make_graph([("t", "manual_trigger"), ("slow", "slow")], [("t", "slow")])
        result = await runner.run(graph)
        assert result.status == RunStatus.FAILED
        assert result.error["kind"] == "transient"
        assert "timed out" in result.error["message"]


class TestStopAndErrorTrigger:

    @pytest.mark.asyncio
    async def test_stop_and_error(self, runner):
        graph = make_graph(
            [
                ("t", "manual_trigger"),
                ("stop", "stop_and_error", {"errorMessage": "Order {{input.id}} rejected", "errorCode": "E42"}),
                ("after", "noop"),
            ],
            [("t", "stop"), ("stop", "after")],
        )
        result = await runner.run(graph, {"id": 7})
        assert result.status == RunStatus.FAILED
        assert result.error["kind"] == "user_stop"
        assert result.error["message"] == "Order 7 rejected"
        assert result.error["context"] == {"code": "E42"}
        assert status_of(result, "after") == NodeStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_stop_as_warning_continues(self, runner):
        graph = make_graph(
            [("t", "manual_trigger"), ("warn", "stop_error", {"errorType": "warning", "errorMessage": "careful"}), ("after", "noop")],
            [("t", "warn"), ("warn", "after")],
        )
        result = await runner.run(graph)
        assert result.status == RunStatus.SUCCESS
        assert "careful" in result.warnings

    def error_graph(self):
        return make_graph(
            [
                ("t", "manual_trigger"),
                ("call", "flaky"),
                ("err", "error_trigger"),
                ("notify", "log", {"message": "{{input.failed_node}} failed: {{input.error_message}}"}),
            ],
            [("t", "call"), ("err", "notify")],
        )

    @pytest.mark.asyncio
    async def test_error_trigger_runs_on_failure(self, runner, flaky):
        flaky.failures = 1
        flaky.permanent = True
        result = await runner.run(self.error_graph())
        assert result.status == RunStatus.FAILED
        assert result.error["nodeId"] == "call"
        assert status_of(result, "notify") == NodeStatus.SUCCESS
        assert result.record_for("notify").output["logged"] == "call failed: flaky node refused"
        assert result.record_for("err").output["error_kind"] == "permanent"

    @pytest.mark.asyncio
    async def test_error_path_idle_on_success(self, runner):
        result = await runner.run(self.error_graph())
        assert result.status == RunStatus.SUCCESS
        assert status_of(result, "err") == NodeStatus.SKIPPED
        assert status_of(result, "notify") == NodeStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_failure_in_error_path_is_recorded_once(self, runner, flaky):
        flaky.failures = 100
        flaky.permanent = True
        graph = make_graph(
            [
                ("t", "manual_trigger"),
                ("boom", "stop_and_error"),
                ("err", "error_trigger"),
                ("call", "flaky"),
            ],
            [("t", "boom"), ("err", "call")],
        )
        result = await runner.run(graph)
        assert result.status == RunStatus.FAILED
        assert result.error["kind"] == "user_stop"
        assert status_of(result, "call") == NodeStatus.FAILED
        assert flaky.calls == 1
        assert any("Error path failed" in w for w in result.warnings)


class TestRunLifecycle:

    @pytest.mark.asyncio
    async def test_cancel_between_dispatches(self, runner):
        graph = make_graph(
            [("t", "manual_trigger"), ("a", "noop"), ("b", "noop")],
            [("t", "a"), ("a", "b")],
        )

        def on_event(event):
            if event.type == ExecutionEventType.NODE_COMPLETE and event.node_id == "a":
                assert runner.cancel(event.run_id)

        result = await runner.run(graph, on_event=on_event)
        assert result.status == RunStatus.CANCELLED
        assert result.error["kind"] == "cancelled"
        assert status_of(result, "a") == NodeStatus.SUCCESS
        assert status_of(result, "b") == NodeStatus.SKIPPED
        assert not runner.is_running(result.run_id)

    @pytest.mark.asyncio
    async def test_cancel_between_loop_iterations(self, runner):
        graph = make_graph(
            [
                ("t", "manual_trigger"),
                ("loop", "loop", {"array": "{{input.items}}"}),
                ("body", "noop"),
                ("after", "noop"),
            ],
            [("t", "loop"), ("loop", "body", "loop"), ("loop", "after", "done")],
        )
        events = []

        def on_event(event):
            events.append((event.type, event.node_id))
            if event.type == ExecutionEventType.NODE_COMPLETE and event.node_id == "body":
                runner.cancel(event.run_id)

        result = await runner.run(graph, {"items": [1, 2, 3]}, on_event=on_event)
        assert result.status == RunStatus.CANCELLED
        assert status_of(result, "loop") == NodeStatus.SKIPPED
        assert result.record_for("loop").error is None
        assert result.record_for("body").iterations == 1
        assert status_of(result, "after") == NodeStatus.SKIPPED
        assert (ExecutionEventType.NODE_ERROR, "loop") not in events
        assert (ExecutionEventType.NODE_SKIPPED, "loop") in events

    @pytest.mark.asyncio
    async def test_cancel_unknown_run(self, runner):
        assert runner.cancel("run_nope") is False

    @pytest.mark.asyncio
    async def test_event_sequence(self, runner):
        events = []
        graph = make_graph([("t", "manual_trigger"), ("a", "noop")], [("t", "a")])
        await runner.run(graph, on_event=events.append)
        assert [e.type for e in events] == [
            ExecutionEventType.EXECUTION_START,
            ExecutionEventType.NODE_START,
            ExecutionEventType.NODE_COMPLETE,
            ExecutionEventType.NODE_START,
            ExecutionEventType.NODE_COMPLETE,
            ExecutionEventType.EXECUTION_COMPLETE,
        ]

    @pytest.mark.asyncio
    async def test_structural_errors_raise(self, runner):
        graph = make_graph([("t", "manual_trigger"), ("a", "noop"), ("b", "noop")], [("t", "a"), ("a", "b"), ("b", "a")])
        with pytest.raises(StructuralError):
            await runner.run(graph)

    @pytest.mark.asyncio
    async def test_explicit_trigger(self, runner):
        graph = make_graph(
            [("manual", "manual_trigger"), ("hook", "webhook"), ("m_next", "noop"), ("h_next", "noop")],
            [("manual", "m_next"), ("hook", "h_next")],
        )
        result = await runner.run(graph, {"body": {"id": 1}}, mode="webhook", trigger_id="hook")
        assert status_of(result, "manual") == NodeStatus.SKIPPED
        assert status_of(result, "m_next") == NodeStatus.SKIPPED
        assert result.record_for("h_next").input["body"] == {"id": 1}
        assert result.mode == "webhook"

        with pytest.raises(StructuralError):
            await runner.run(graph, trigger_id="missing")

    @pytest.mark.asyncio
    async def test_repairs_become_warnings(self, runner):
        graph = make_graph([("t", "manual_trigger"), ("a", "noop"), ("orphan", "noop")], [("t", "a")])
        result = await runner.run(graph)
        assert status_of(result, "orphan") == NodeStatus.SUCCESS
        assert any("orphan" in w for w in result.warnings)

    @pytest.mark.asyncio
    async def test_variables_are_run_global(self, runner):
        graph = make_graph(
            [
                ("t", "manual_trigger"),
                ("var", "set_variable", {"name": "total", "value": "{{input.count}}"}),
                ("fmt", "text_formatter", {"template": "Total: {{vars.total}} ({{vars.region}})"}),
            ],
            [("t", "var"), ("var", "fmt")],
        )
        result = await runner.run(graph, {"count": 3}, variables={"region": "eu"})
        assert result.variables == {"region": "eu", "total": 3}
        assert result.output["formatted"] == "Total: 3 (eu)"

    @pytest.mark.asyncio
    async def test_to_dict_shape(self, runner):
        result = await runner.run(branch_graph(), {"x": 5})
        data = result.to_dict()
        assert data["runId"] == result.run_id
        assert data["status"] == "success"
        assert data["durationMs"] >= 0
        assert {log["nodeId"] for log in data["logs"]} == {"t", "s", "c", "big", "small"}
        assert data["error"] is None


class TestHttpRequest:

    @pytest.mark.asyncio
    async def test_request_through_shared_client(self, runner):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"hello": request.url.params["name"]})

        graph = make_graph(
            [
                ("t", "manual_trigger"),
                ("call", "http_request", {"url": "https://api.example.com/greet", "query": {"name": "{{input.name}}"}}),
            ],
            [("t", "call")],
        )
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await runner.run(graph, {"name": "Ada"}, http_client=client)

        assert result.status == RunStatus.SUCCESS
        assert result.output["statusCode"] == 200
        assert result.output["body"] == {"hello": "Ada"}
        assert seen[0].method == "GET"

    @pytest.mark.asyncio
    async def test_5xx_is_retried(self, runner):
        responses = iter([httpx.Response(503), httpx.Response(502), httpx.Response(200, json={"ok": True})])

        graph = make_graph(
            [
                ("t", "manual_trigger"),
                ("eh", "error_handler", {"maxRetries": 3, "retryDelay": 0}),
                ("call", "http_request", {"method": "POST", "url": "https://api.example.com/jobs"}),
            ],
            [("t", "eh"), ("eh", "call")],
        )
        transport = httpx.MockTransport(lambda request: next(responses))
        async with httpx.AsyncClient(transport=transport) as client:
            result = await runner.run(graph, {"job": 1}, http_client=client)

        record = result.record_for("call")
        assert record.attempts == 3
        assert record.output["body"] == {"ok": True}

    @pytest.mark.asyncio
    async def test_4xx_is_permanent(self, runner):
        graph = make_graph(
            [("t", "manual_trigger"), ("call", "http_request", {"url": "https://api.example.com/missing"})],
            [("t", "call")],
        )
        transport = httpx.MockTransport(lambda request: httpx.Response(404, text="nope"))
        async with httpx.AsyncClient(transport=transport) as client:
            result = await runner.run(graph, http_client=client)

        assert result.status == RunStatus.FAILED
        assert result.error["kind"] == "permanent"
        assert result.error["context"]["status"] == 404
