"""
Fraud Detection Training Pipeline

Runs the model training and deployment workflow from
training_pipeline.json against simulated services:

- Lambda-style steps are plain functions (FunctionInvoker)
- The data processing and training jobs are poll-to-completion jobs
  (PollingInvoker) that finish after a few polls
- Loading properties into the graph database is a callback task: the
  "container" reports back through send_task_success()

The pipeline is run twice: once when no endpoint exists yet (Choice picks
"Create endpoint") and once when it does ("Update endpoint").

## Run with
```bash
PYTHONPATH=src python3 examples/training_pipeline.py
```
"""

import asyncio
import itertools
import logging
from pathlib import Path

from pyhodos import (
    CallbackInvoker,
    Engine,
    InMemoryEventSink,
    InMemoryRunLog,
    InvokerRegistry,
    JobResult,
    PollingInvoker,
    load_definition_json,
    send_task_success,
)

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

DEFINITION_FILE = Path(__file__).with_name("training_pipeline.json")


# ============================================================================
# Simulated services
# ============================================================================


def parameters_normalize(input):
    defaults = {"instanceCount": 1, "instanceType": "ml.c5.9xlarge", "timeoutInSeconds": 10800}
    training_job = {**defaults, **input["Payload"].get("trainingJob", {})}
    training_job.setdefault("hyperparameters", {"n-hidden": "16", "n-epochs": "100"})
    return {"Payload": {"parameters": {"trainingJob": training_job}}}


def lambda_ok(input):
    return {"Payload": {"status": "ok"}}


def package_model(input):
    artifact = input["Payload"]["ModelArtifact"]
    repackaged = artifact.replace("model.tar.gz", "repackaged.tar.gz")
    return {"Payload": {"RepackagedArtifact": repackaged}}


class SimulatedJobInvoker(PollingInvoker):
    """A batch job that reports RUNNING for a few polls, then its output."""

    def __init__(self, output_for, polls_needed: int = 3, poll_interval: float = 0.05):
        self._output_for = output_for
        self._polls_needed = polls_needed
        self.poll_interval = poll_interval
        self._jobs: dict[str, dict] = {}
        self._ids = itertools.count(1)

    async def submit(self, ref, input):
        job_id = f"{ref}-{next(self._ids)}"
        self._jobs[job_id] = {"input": input, "polls": 0}
        return job_id

    async def poll(self, handle):
        job = self._jobs[handle]
        job["polls"] += 1
        if job["polls"] < self._polls_needed:
            return JobResult.running()
        return JobResult.succeeded(self._output_for(handle, job["input"]))

    async def cancel(self, handle):
        self._jobs.pop(handle, None)


class LoadPropsInvoker(CallbackInvoker):
    """Starts a container that reports completion with its task token."""

    def __init__(self):
        self._containers: set[asyncio.Task] = set()

    async def invoke_async(self, ref, input, callback):
        async def container(token):
            await asyncio.sleep(0.1)
            send_task_success(token, {"loaded": input["JobName"]})

        task = asyncio.create_task(container(callback.token))
        self._containers.add(task)
        task.add_done_callback(self._containers.discard)


def build_registry(endpoint_exists: bool) -> InvokerRegistry:
    registry = InvokerRegistry()
    registry.register_function("lambda:parameters-normalize", parameters_normalize)
    registry.register_function("lambda:data-ingest", lambda_ok)
    registry.register_function("lambda:data-catalog-crawl", lambda_ok)
    registry.register(
        "glue:data-process",
        SimulatedJobInvoker(lambda job_id, _: {"JobRunId": f"fraud-detection-{job_id}"}),
    )
    registry.register(
        "sagemaker:train-model",
        SimulatedJobInvoker(
            lambda _, input: {
                "TrainingJobName": input["TrainingJobName"],
                "ModelArtifacts": {
                    "S3ModelArtifacts": f"s3://models/{input['TrainingJobName']}/model.tar.gz"
                },
                "BillableTimeInSeconds": 1234,
            }
        ),
    )
    registry.register("ecs:load-props", LoadPropsInvoker())
    registry.register_function("lambda:package-model", package_model)
    registry.register_function(
        "sagemaker:create-model", lambda input: {"ModelArn": f"arn:model/{input['ModelName']}"}
    )
    registry.register_function(
        "sagemaker:create-endpoint-config",
        lambda input: {"EndpointConfigArn": f"arn:endpoint-config/{input['EndpointConfigName']}"},
    )
    registry.register_function(
        "lambda:check-endpoint",
        lambda input: {"Payload": {"Endpoint": {"frauddetection": endpoint_exists}}},
    )
    registry.register_function("sagemaker:create-endpoint", lambda input: {"created": True})
    registry.register_function("sagemaker:update-endpoint", lambda input: {"updated": True})
    return registry


async def main():
    definition = load_definition_json(DEFINITION_FILE.read_text())
    print(f"Loaded {definition!r}, fingerprint {definition.fingerprint()}")

    for endpoint_exists in (False, True):
        sink = InMemoryEventSink()
        run_log = InMemoryRunLog()
        engine = (
            Engine(build_registry(endpoint_exists)).with_event_sink(sink).with_run_log(run_log)
        )

        handle = engine.start(definition, {"trainingJob": {"instanceCount": 2}})
        outcome = await handle.result()

        entered = [e.state_name for e in handle.history() if e.event_type.value == "STATE_ENTERED"]
        print(f"\nendpoint exists: {endpoint_exists}")
        print(f"  outcome: {outcome}")
        print(f"  path: {' -> '.join(entered)}")
        record = await run_log.get_run(handle.run_id)
        print(f"  stored status: {record.status}, events: {len(sink)}")

        await engine.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
