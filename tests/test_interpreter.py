"""
Tests for the run control loop: state dispatch, Retry/Catch routing,
result merging and timeouts.

Backoff waits go through RecordingSleep, so the schedules are checked
without actually waiting.
"""

import pytest

from conftest import FakeJobInvoker, ScriptedInvoker, service_error

from pyhodos import (
    Engine,
    EventType,
    Failed,
    InvocationFailure,
    Succeeded,
    get_current_run,
    load_definition,
)


@pytest.fixture
def engine(registry, recording_sleep, event_sink) -> Engine:
    return Engine(registry).with_sleep(recording_sleep).with_event_sink(event_sink)


def single_task(task: dict, extra_states: dict | None = None, **top) -> dict:
    states = {"Work": {"Type": "Task", "Resource": "lambda:work", **task}}
    states.update(extra_states or {})
    return {"StartAt": "Work", "States": states, **top}


SERVICE_RETRY = {
    "ErrorEquals": ["Lambda.ServiceException"],
    "IntervalSeconds": 2,
    "MaxAttempts": 3,
    "BackoffRate": 2,
}


# ==============================================================================
# Retry then success
# ==============================================================================


@pytest.mark.asyncio
async def test_retry_until_success(engine, registry, recording_sleep, event_sink):
    invoker = ScriptedInvoker(service_error(), service_error(), {"result": 3})
    registry.register("lambda:work", invoker)
    definition = load_definition(single_task({"Retry": [SERVICE_RETRY], "End": True}))

    outcome = await engine.execute(definition, {"request": 1})

    assert outcome == Succeeded({"result": 3})
    assert invoker.calls == 3
    assert recording_sleep.delays == [2.0, 4.0]

    retries = event_sink.of_type(EventType.RETRY_SCHEDULED)
    assert [e.details["attempt"] for e in retries] == [1, 2]
    assert [e.details["delay_seconds"] for e in retries] == [2.0, 4.0]
    assert retries[0].details["error"] == "Lambda.ServiceException"


@pytest.mark.asyncio
async def test_every_attempt_gets_the_same_input(engine, registry):
    invoker = ScriptedInvoker(service_error(), {"ok": True})
    registry.register("lambda:work", invoker)
    definition = load_definition(single_task({"Retry": [SERVICE_RETRY], "End": True}))

    await engine.execute(definition, {"request": 1})

    assert invoker.inputs == [{"request": 1}, {"request": 1}]


@pytest.mark.asyncio
async def test_plain_exceptions_are_matched_by_class_name(engine, registry, recording_sleep):
    invoker = ScriptedInvoker(ConnectionError("reset"), "done")
    registry.register("lambda:work", invoker)
    retry = {"ErrorEquals": ["ConnectionError"], "IntervalSeconds": 1}
    definition = load_definition(single_task({"Retry": [retry], "End": True}))

    outcome = await engine.execute(definition, {})

    assert outcome == Succeeded("done")
    assert recording_sleep.delays == [1.0]


# ==============================================================================
# Catch
# ==============================================================================


@pytest.mark.asyncio
async def test_exhausted_retry_goes_to_catch(engine, registry, recording_sleep, event_sink):
    invoker = ScriptedInvoker(service_error("throttled"))
    registry.register("lambda:work", invoker)
    retry = {**SERVICE_RETRY, "MaxAttempts": 2}
    definition = load_definition(
        single_task(
            {
                "Retry": [retry],
                "Catch": [{"ErrorEquals": ["States.ALL"], "ResultPath": "$.error", "Next": "Fail"}],
                "Next": "Done",
            },
            {"Fail": {"Type": "Fail"}, "Done": {"Type": "Succeed"}},
        )
    )

    outcome = await engine.execute(definition, {"request": 1})

    assert outcome == Failed("States.Fail", "", "Fail")
    assert invoker.calls == 3
    assert recording_sleep.delays == [2.0, 4.0]

    caught = event_sink.of_type(EventType.ERROR_CAUGHT)
    assert len(caught) == 1
    assert caught[0].details["next"] == "Fail"

    entered_fail = [
        e for e in event_sink.of_type(EventType.STATE_ENTERED) if e.state_name == "Fail"
    ]
    assert entered_fail[0].details["input"] == {
        "request": 1,
        "error": {"Error": "Lambda.ServiceException", "Cause": "throttled"},
    }


@pytest.mark.asyncio
async def test_catch_without_result_path_replaces_document(engine, registry):
    registry.register("lambda:work", ScriptedInvoker(InvocationFailure("Model.Invalid", "bad")))
    definition = load_definition(
        single_task(
            {"Catch": [{"ErrorEquals": ["Model.Invalid"], "Next": "Recover"}], "End": True},
            {"Recover": {"Type": "Succeed"}},
        )
    )

    outcome = await engine.execute(definition, {"request": 1})

    assert outcome == Succeeded({"Error": "Model.Invalid", "Cause": "bad"})


@pytest.mark.asyncio
async def test_catch_with_null_result_path_keeps_input(engine, registry):
    registry.register("lambda:work", ScriptedInvoker(InvocationFailure("Model.Invalid", "bad")))
    definition = load_definition(
        single_task(
            {
                "Catch": [{"ErrorEquals": ["*"], "ResultPath": None, "Next": "Recover"}],
                "End": True,
            },
            {"Recover": {"Type": "Succeed"}},
        )
    )

    outcome = await engine.execute(definition, {"request": 1})

    assert outcome == Succeeded({"request": 1})


@pytest.mark.asyncio
async def test_non_retryable_error_skips_retry(engine, registry, recording_sleep):
    invoker = ScriptedInvoker(InvocationFailure("Lambda.ServiceException", "bad", retryable=False))
    registry.register("lambda:work", invoker)
    definition = load_definition(
        single_task(
            {
                "Retry": [SERVICE_RETRY],
                "Catch": [{"ErrorEquals": ["States.ALL"], "Next": "Recover"}],
                "End": True,
            },
            {"Recover": {"Type": "Succeed"}},
        )
    )

    await engine.execute(definition, {})

    assert invoker.calls == 1
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_unrouted_failure_fails_the_run(engine, registry, event_sink):
    registry.register("lambda:work", ScriptedInvoker(service_error("throttled")))
    definition = load_definition(single_task({"End": True}))

    outcome = await engine.execute(definition, {})

    assert outcome == Failed("Lambda.ServiceException", "throttled", "Work")
    last = event_sink.events[-1]
    assert last.event_type == EventType.RUN_FAILED
    assert last.state_name == "Work"
    assert last.details == {"error": "Lambda.ServiceException", "cause": "throttled"}


@pytest.mark.asyncio
async def test_attempt_counter_resets_on_transition(registry, recording_sleep, event_sink):
    engine = Engine(registry).with_sleep(recording_sleep).with_event_sink(event_sink)
    registry.register("lambda:first", ScriptedInvoker(service_error(), {"a": 1}))
    registry.register("lambda:second", ScriptedInvoker(service_error(), {"b": 2}))
    retry = {"ErrorEquals": ["States.ALL"], "IntervalSeconds": 1, "MaxAttempts": 1}
    definition = load_definition(
        {
            "StartAt": "First",
            "States": {
                "First": {
                    "Type": "Task",
                    "Resource": "lambda:first",
                    "Retry": [retry],
                    "Next": "Second",
                },
                "Second": {
                    "Type": "Task",
                    "Resource": "lambda:second",
                    "Retry": [retry],
                    "End": True,
                },
            },
        }
    )

    outcome = await engine.execute(definition, {})

    # MaxAttempts=1 would be exhausted in Second if the counter carried over
    assert outcome == Succeeded({"b": 2})
    retries = event_sink.of_type(EventType.RETRY_SCHEDULED)
    assert [(e.state_name, e.details["attempt"]) for e in retries] == [
        ("First", 1),
        ("Second", 1),
    ]


@pytest.mark.asyncio
async def test_invoker_sees_run_context(engine, registry):
    seen = []

    async def work(input):
        context = get_current_run()
        seen.append((context.state_name, context.attempt))
        if len(seen) == 1:
            raise service_error()
        return input

    registry.register_function("lambda:work", work)
    definition = load_definition(single_task({"Retry": [SERVICE_RETRY], "End": True}))

    handle = engine.start(definition, {})
    await handle.result()

    assert seen == [("Work", 1), ("Work", 2)]
    assert get_current_run() is None


# ==============================================================================
# Input and output processing
# ==============================================================================


@pytest.mark.asyncio
async def test_result_merged_at_result_path(engine, registry):
    registry.register("lambda:work", ScriptedInvoker({"bar": 1}))
    definition = load_definition(single_task({"ResultPath": "$.foo", "End": True}))

    outcome = await engine.execute(definition, {"x": 1})

    assert outcome == Succeeded({"x": 1, "foo": {"bar": 1}})


@pytest.mark.asyncio
async def test_result_merged_into_list_document(engine, registry):
    registry.register("lambda:work", ScriptedInvoker("r"))
    definition = load_definition(single_task({"ResultPath": "$[0]", "End": True}))

    outcome = await engine.execute(definition, ["a", "b"])

    assert outcome == Succeeded(["r", "b"])


@pytest.mark.asyncio
async def test_parameters_and_result_selector(engine, registry):
    invoker = ScriptedInvoker({"Arn": "arn:model/m", "Other": 2})
    registry.register("lambda:work", invoker)
    definition = load_definition(
        single_task(
            {
                "Parameters": {"Name.$": "$.job.name", "Mode": "Single"},
                "ResultSelector": {"ModelArn.$": "$.Arn"},
                "ResultPath": "$.modelOutput",
                "End": True,
            }
        )
    )

    outcome = await engine.execute(definition, {"job": {"name": "m"}})

    assert invoker.inputs == [{"Name": "m", "Mode": "Single"}]
    assert outcome == Succeeded({"job": {"name": "m"}, "modelOutput": {"ModelArn": "arn:model/m"}})


@pytest.mark.asyncio
async def test_invoker_cannot_mutate_the_document(engine, registry):
    def mutate(input):
        input["request"] = "changed"
        return None

    registry.register_function("lambda:work", mutate)
    definition = load_definition(single_task({"ResultPath": None, "End": True}))
    document = {"request": 1}

    outcome = await engine.execute(definition, document)

    assert outcome == Succeeded({"request": 1})
    assert document == {"request": 1}


@pytest.mark.asyncio
async def test_missing_parameter_path_is_a_runtime_error(engine, registry):
    invoker = ScriptedInvoker("never")
    registry.register("lambda:work", invoker)
    definition = load_definition(
        single_task(
            {
                "Parameters": {"Name.$": "$.missing"},
                "Catch": [{"ErrorEquals": ["States.ALL"], "Next": "Recover"}],
                "End": True,
            },
            {"Recover": {"Type": "Succeed"}},
        )
    )

    outcome = await engine.execute(definition, {})

    # Engine data errors are fatal; Catch never sees them
    assert isinstance(outcome, Failed)
    assert outcome.error == "States.Runtime"
    assert outcome.state_name == "Work"
    assert invoker.calls == 0


@pytest.mark.asyncio
async def test_unmergeable_result_is_a_runtime_error(engine, registry):
    registry.register("lambda:work", ScriptedInvoker({"v": 1}))
    definition = load_definition(single_task({"ResultPath": "$.x.y", "End": True}))

    outcome = await engine.execute(definition, {"x": 3})

    assert isinstance(outcome, Failed)
    assert outcome.error == "States.Runtime"


# ==============================================================================
# Choice, Fail and Succeed
# ==============================================================================


def branching_definition(default: str | None = "None"):
    choice = {
        "Type": "Choice",
        "Choices": [
            {"Variable": "$.count", "NumericGreaterThan": 10, "Next": "High"},
            {"Variable": "$.count", "NumericGreaterThan": 0, "Next": "Low"},
        ],
    }
    if default is not None:
        choice["Default"] = default
    states = {
        "Branch": choice,
        "High": {"Type": "Succeed"},
        "Low": {"Type": "Succeed"},
    }
    if default is not None:
        states["None"] = {"Type": "Fail", "Error": "Count.Empty", "Cause": "nothing to do"}
    return load_definition({"StartAt": "Branch", "States": states})


@pytest.mark.asyncio
async def test_choice_takes_first_matching_rule(engine, event_sink):
    handle = engine.start(branching_definition(), {"count": 5})
    outcome = await handle.result()

    assert outcome == Succeeded({"count": 5})
    entered = [e.state_name for e in event_sink.of_type(EventType.STATE_ENTERED)]
    assert entered == ["Branch", "Low"]


@pytest.mark.asyncio
async def test_choice_default_leads_to_fail_state(engine):
    outcome = await engine.execute(branching_definition(), {"count": 0})
    assert outcome == Failed("Count.Empty", "nothing to do", "None")


@pytest.mark.asyncio
async def test_choice_without_match_or_default(engine):
    outcome = await engine.execute(branching_definition(default=None), {"count": -1})
    assert isinstance(outcome, Failed)
    assert outcome.error == "States.NoChoiceMatched"
    assert outcome.state_name == "Branch"


@pytest.mark.asyncio
async def test_choice_on_missing_variable(engine):
    outcome = await engine.execute(branching_definition(), {})
    assert isinstance(outcome, Failed)
    assert outcome.error == "States.Runtime"


# ==============================================================================
# Event stream
# ==============================================================================


@pytest.mark.asyncio
async def test_event_stream_for_a_simple_run(engine, registry, event_sink):
    registry.register("lambda:work", ScriptedInvoker({"ok": True}))
    definition = load_definition(
        single_task({"ResultPath": "$.out", "Next": "Done"}, {"Done": {"Type": "Succeed"}})
    )

    handle = engine.start(definition, {"in": 1})
    await handle.result()

    events = event_sink.for_run(handle.run_id)
    assert [e.event_type for e in events] == [
        EventType.RUN_STARTED,
        EventType.STATE_ENTERED,
        EventType.STATE_EXITED,
        EventType.STATE_ENTERED,
        EventType.STATE_EXITED,
        EventType.RUN_SUCCEEDED,
    ]
    assert [e.sequence for e in events] == list(range(6))
    assert events[0].details == {"input": {"in": 1}}
    assert events[1].details == {"type": "Task", "input": {"in": 1}}
    assert events[2].details == {"next": "Done"}
    assert events[-1].details == {"output": {"in": 1, "out": {"ok": True}}}
    assert handle.history() == events


# ==============================================================================
# Timeouts
# ==============================================================================


@pytest.mark.asyncio
async def test_task_timeout_cancels_job_and_fails(engine, registry):
    invoker = FakeJobInvoker(running_polls=None)
    registry.register("lambda:work", invoker)
    definition = load_definition(single_task({"TimeoutSeconds": 0.05, "End": True}))

    outcome = await engine.execute(definition, {})

    assert isinstance(outcome, Failed)
    assert outcome.error == "States.Timeout"
    assert outcome.state_name == "Work"
    assert invoker.cancelled == ["job-1"]


@pytest.mark.asyncio
async def test_task_failed_does_not_catch_timeouts(engine, registry):
    registry.register("lambda:work", FakeJobInvoker(running_polls=None))
    definition = load_definition(
        single_task(
            {
                "TimeoutSeconds": 0.05,
                "Catch": [{"ErrorEquals": ["States.TaskFailed"], "Next": "Recover"}],
                "End": True,
            },
            {"Recover": {"Type": "Succeed"}},
        )
    )

    outcome = await engine.execute(definition, {})

    assert isinstance(outcome, Failed)
    assert outcome.error == "States.Timeout"


@pytest.mark.asyncio
async def test_timeouts_can_be_retried(engine, registry):
    invoker = FakeJobInvoker(running_polls=None)
    registry.register("lambda:work", invoker)
    definition = load_definition(
        single_task(
            {
                "TimeoutSeconds": 0.05,
                "Retry": [{"ErrorEquals": ["States.Timeout"], "MaxAttempts": 1}],
                "Catch": [{"ErrorEquals": ["States.Timeout"], "Next": "Recover"}],
                "End": True,
            },
            {"Recover": {"Type": "Succeed"}},
        )
    )

    outcome = await engine.execute(definition, {})

    assert isinstance(outcome, Succeeded)
    assert outcome.output["Error"] == "States.Timeout"
    assert len(invoker.submitted) == 2
    assert invoker.cancelled == ["job-1", "job-2"]


@pytest.mark.asyncio
async def test_run_timeout(engine, registry):
    invoker = FakeJobInvoker(running_polls=None)
    registry.register("lambda:work", invoker)
    definition = load_definition(single_task({"End": True}, TimeoutSeconds=0.05))

    outcome = await engine.execute(definition, {})

    assert isinstance(outcome, Failed)
    assert outcome.error == "States.Timeout"
    assert outcome.state_name == "Work"
    assert invoker.cancelled == ["job-1"]
