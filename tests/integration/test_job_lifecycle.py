"""Integration tests for the job lifecycle from submission to settlement."""

import asyncio
import json
from unittest.mock import patch

import httpx
import pytest

from compute_market.adapters.outbound.http_host_channel import HttpHostChannel
from compute_market.adapters.outbound.http_oracle import HttpBenchmarkOracle
from compute_market.adapters.outbound.memory_provider_directory import InMemoryProviderDirectory
from compute_market.adapters.outbound.memory_score_store import InMemoryScoreStore
from compute_market.application.controller import JobLifecycleController
from compute_market.domain.entities.job import JobState, JobSubmission
from compute_market.domain.services.match_queue import JobQueue
from compute_market.domain.services.matcher import MatchingEngine
from compute_market.domain.services.reputation_scorer import ReputationScorer
from compute_market.infrastructure.config import Config, HostChannelConfig, LifecycleConfig
from compute_market.infrastructure.container import Container, get_container

from conftest import FakeClock, StubOracle, make_listing, make_requirements

WORKER_URL = "http://host-a.worker:9000"


def submission(client_key: str = "ClientWallet", **requirements) -> JobSubmission:
    return JobSubmission(
        client_key=client_key,
        requirements=make_requirements(**requirements),
        image_reference="dockerhub/pytorch-model-v2:latest",
        input_reference="s3://client-data-bucket/input-file.zip",
    )


class Marketplace:
    """Core components wired to an HTTP host channel on a mocked transport."""

    def __init__(self, client: httpx.AsyncClient, sync: bool = True, oracle=None) -> None:
        self.clock = FakeClock()
        self.directory = InMemoryProviderDirectory([make_listing()])
        self.store = InMemoryScoreStore(default_score=1000)
        self.channel = HttpHostChannel({"HostA": WORKER_URL}, client=client)
        self.queue = JobQueue(
            MatchingEngine(self.directory, self.channel, clock=self.clock),
            ledger=self.directory,
            clock=self.clock,
        )
        self.scorer = ReputationScorer(self.store, oracle or StubOracle(), clock=self.clock)
        self.controller = JobLifecycleController(
            self.queue, self.scorer, sync_queue_status=sync, clock=self.clock
        )


def run_market(worker, scenario, **kwargs):
    """Run scenario(market) with the worker node served by a mock transport."""

    async def main():
        async with httpx.AsyncClient(transport=httpx.MockTransport(worker)) as client:
            return await scenario(Marketplace(client, **kwargs))

    return asyncio.run(main())


def accepting_worker(received: list):
    def handler(request: httpx.Request) -> httpx.Response:
        received.append(json.loads(request.content))
        return httpx.Response(202, json={"status": "accepted"})

    return handler


@pytest.mark.integration
class TestHappyPath:
    """Submission, matching, dispatch and settlement."""

    def test_job_runs_to_completion(self):
        received = []

        async def scenario(market: Marketplace):
            job_id = market.controller.submit_job(submission())
            await market.queue.wait_idle()

            executing = market.controller.get_job_status(job_id)
            market.clock.advance(1800)
            completed = await market.controller.handle_job_result(job_id, "HostA", "QmResultHash")
            score = await market.store.get_score("ResPDA1")
            return job_id, executing, completed, score, market

        job_id, executing, completed, score, market = run_market(accepting_worker(received), scenario)

        assert received == [
            {
                "job_id": job_id,
                "image_url": "dockerhub/pytorch-model-v2:latest",
                "input_data": "s3://client-data-bucket/input-file.zip",
                "timeout_sec": 3600,
            }
        ]
        assert executing.status is JobState.EXECUTING
        assert executing.host == "HostA"
        assert completed.status is JobState.COMPLETED
        assert completed.elapsed_seconds == 1800
        assert score == 1120
        assert market.controller.get_queue_stats()["dispatched"] == 1
        assert market.directory.escrows[0][:3] == ("ClientWallet", "ResPDA1", 5000)

        history = market.store.history("ResPDA1")
        assert [(u.old_score, u.new_score) for u in history] == [(1000, 1120)]
        assert history[0].reason == f"Job {job_id} completed successfully"

    def test_priority_job_overtakes_waiting_jobs(self):
        received = []

        async def scenario(market: Marketplace):
            first = market.controller.submit_job(submission())
            await asyncio.sleep(0)  # first job enters matching
            market.clock.advance(1)
            second = market.controller.submit_job(submission())
            market.clock.advance(1)
            urgent = market.controller.submit_job(submission(is_high_priority=True))
            await market.queue.wait_idle()
            return first, second, urgent

        first, second, urgent = run_market(accepting_worker(received), scenario)

        assert [body["job_id"] for body in received] == [first, urgent, second]


@pytest.mark.integration
class TestDispatchFailures:
    """Dispatch failures and status reconciliation."""

    @pytest.mark.parametrize("status_code", [409, 503])
    def test_failed_dispatch_fails_job(self, status_code):
        async def scenario(market: Marketplace):
            job_id = market.controller.submit_job(submission())
            await market.queue.wait_idle()
            return market.controller.get_job_status(job_id), market.controller.get_queue_stats()

        job, stats = run_market(lambda request: httpx.Response(status_code), scenario)

        assert job.status is JobState.FAILED
        assert job.error == "Dispatch to host HostA failed"
        assert stats["failed"] == 1
        assert stats["dispatched"] == 0

    def test_failed_dispatch_leaves_job_pending_without_sync(self):
        async def scenario(market: Marketplace):
            job_id = market.controller.submit_job(submission())
            await market.queue.wait_idle()
            return market.controller.get_job_status(job_id), market.controller.get_queue_stats()

        job, stats = run_market(lambda request: httpx.Response(409), scenario, sync=False)

        assert job.status is JobState.PENDING
        assert stats["failed"] == 1

    def test_host_failure_report_penalises_provider(self):
        received = []

        async def scenario(market: Marketplace):
            job_id = market.controller.submit_job(submission())
            await market.queue.wait_idle()
            job = await market.controller.handle_job_failure(job_id, "HostA", "CUDA out of memory")
            return job, await market.store.get_score("ResPDA1")

        job, score = run_market(accepting_worker(received), scenario)

        assert job.status is JobState.FAILED
        assert job.error == "CUDA out of memory"
        assert score == 900


@pytest.mark.integration
def test_oracle_recalibration_over_http():
    def feed(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"score": 8500})

    async def main():
        async with httpx.AsyncClient(transport=httpx.MockTransport(feed)) as client:
            oracle = HttpBenchmarkOracle("https://oracle.test", client=client, clock=FakeClock())
            store = InMemoryScoreStore(default_score=1000)
            scorer = ReputationScorer(store, oracle, clock=FakeClock())
            updates = await scorer.recalibrate([make_listing(key="A"), make_listing(key="B")])
            return updates, await store.get_score("A")

    updates, score = asyncio.run(main())

    assert [u.new_score for u in updates] == [985, 985]
    assert all(u.host == "oracle_update" for u in updates)
    assert score == 985


@pytest.mark.integration
class TestContainer:
    """Container wiring."""

    def test_container_wires_shared_components(self, container, directory, score_store):
        assert container.controller.get_queue_stats() == container.queue.get_stats()
        assert container.directory is directory
        assert container.score_store is score_store
        assert get_container() is container

    def test_container_runs_a_job(self, container, directory, host_channel):
        directory.upsert(make_listing())

        job_id = container.controller.submit_job(submission())
        asyncio.run(container.queue.process_pending())

        assert container.controller.get_job_status(job_id).status is JobState.EXECUTING
        assert host_channel.sent[0][1].job_id == job_id
        assert directory.escrows[0][0] == "ClientWallet"
        assert "marketplace_jobs_submitted_total" in container.metrics.export_metrics()

    def test_config_disables_escrow_and_sync(self, directory, host_channel, oracle, score_store):
        config = Config(
            queue={"require_escrow": False},
            lifecycle=LifecycleConfig(sync_queue_status=False),
            host_channel=HostChannelConfig(endpoints={"HostA": WORKER_URL}),
        )
        with patch("compute_market.infrastructure.container.get_config", return_value=config):
            container = Container.create(
                directory=directory,
                host_channel=host_channel,
                oracle=oracle,
                score_store=score_store,
            )
        directory.upsert(make_listing())

        job_id = container.controller.submit_job(submission())
        asyncio.run(container.queue.process_pending())

        assert directory.escrows == []
        assert container.controller.get_job_status(job_id).status is JobState.PENDING
        assert container.controller.get_job_status(job_id).host == "HostA"
