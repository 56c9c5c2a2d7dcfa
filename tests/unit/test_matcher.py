"""Unit tests for the matching engine."""

import asyncio
import dataclasses
import random

import pytest

from compute_market.adapters.outbound.memory_provider_directory import InMemoryProviderDirectory
from compute_market.domain.entities.provider import ProviderStatus
from compute_market.domain.errors import DispatchFailure
from compute_market.domain.services.matcher import MatchingEngine

from conftest import T0, FakeClock, RecordingHostChannel, make_listing, make_payload, make_requirements


def make_engine(listings, clock=None, host_channel=None) -> MatchingEngine:
    return MatchingEngine(
        InMemoryProviderDirectory(listings),
        host_channel or RecordingHostChannel(),
        clock=clock or FakeClock(),
    )


def random_listing(rng: random.Random, index: int):
    return make_listing(
        key=f"Res{index}",
        host=f"Host{index}",
        vram_gb=rng.randint(1, 96),
        compute_rating=rng.randint(1, 40000),
        price_per_hour=rng.randint(0, 30000),
        status=rng.choice(list(ProviderStatus)),
        reputation_score=rng.randint(0, 10000),
        last_updated=T0 - rng.uniform(0, 120),
    )


def random_requirements(rng: random.Random):
    return make_requirements(
        required_vram=rng.randint(1, 80),
        min_compute_rating=rng.randint(1, 30000),
        max_price_per_second=rng.randint(1, 8),
    )


@pytest.mark.unit
class TestFiltering:
    """Test availability and hard-constraint filters."""

    def test_busy_provider_with_better_specs_is_skipped(self):
        idle = make_listing(key="Idle", vram_gb=24, compute_rating=15000, price_per_hour=5000)
        busy = make_listing(
            key="Busy",
            vram_gb=80,
            compute_rating=35000,
            price_per_hour=3600,
            status=ProviderStatus.BUSY,
            reputation_score=10000,
        )
        engine = make_engine([busy, idle])

        match = asyncio.run(engine.find_best_match(make_requirements()))

        assert match is not None
        assert match.public_key == "Idle"

    @pytest.mark.parametrize(
        "listing",
        [
            make_listing(vram_gb=8),
            make_listing(compute_rating=9999),
            make_listing(price_per_hour=3 * 3600),
            make_listing(status=ProviderStatus.OFFLINE),
            make_listing(status=ProviderStatus.SUSPENDED),
        ],
    )
    def test_disqualified_provider_yields_no_match(self, listing):
        engine = make_engine([listing])
        assert asyncio.run(engine.find_best_match(make_requirements())) is None

    def test_per_second_price_is_truncated(self):
        """7199/hour is 1/second after truncation, within a max of 1."""
        listing = make_listing(price_per_hour=7199)
        assert MatchingEngine.is_eligible(listing, make_requirements(max_price_per_second=1))

    def test_empty_directory(self):
        assert asyncio.run(make_engine([]).find_best_match(make_requirements())) is None


@pytest.mark.unit
class TestScoring:
    """Test the four score components."""

    def test_reference_listing_score(self):
        engine = make_engine([])
        score = engine.score(make_listing(), make_requirements(), now=T0)

        assert score.capability == pytest.approx(40.0)
        assert score.price == pytest.approx(10.0)
        assert score.reputation == pytest.approx(28.5)
        assert score.freshness == pytest.approx(10.0)
        assert score.total == pytest.approx(88.5)

    def test_capability_rewards_up_to_twice_the_requirement(self):
        engine = make_engine([])
        requirements = make_requirements(required_vram=16, min_compute_rating=10000)

        exact = engine.score(make_listing(vram_gb=16, compute_rating=10000), requirements, now=T0)
        double = engine.score(make_listing(vram_gb=32, compute_rating=20000), requirements, now=T0)
        quad = engine.score(make_listing(vram_gb=64, compute_rating=40000), requirements, now=T0)

        assert exact.capability == pytest.approx(40.0)
        assert double.capability == pytest.approx(40.0)
        assert quad.capability == pytest.approx(40.0)

    def test_capability_below_cap(self):
        engine = make_engine([])
        requirements = make_requirements(required_vram=32, min_compute_rating=20000)
        score = engine.score(make_listing(vram_gb=16, compute_rating=10000), requirements, now=T0)
        assert score.capability == pytest.approx(20.0)

    def test_freshness_decays_one_point_per_six_seconds(self):
        engine = make_engine([])
        listing = make_listing(last_updated=T0)
        requirements = make_requirements()

        assert engine.score(listing, requirements, now=T0 + 30).freshness == pytest.approx(5.0)
        assert engine.score(listing, requirements, now=T0 + 60).freshness == 0.0
        assert engine.score(listing, requirements, now=T0 + 600).freshness == 0.0

    def test_freshness_capped_for_future_heartbeat(self):
        engine = make_engine([])
        listing = make_listing(last_updated=T0 + 60)
        assert engine.score(listing, make_requirements(), now=T0).freshness == 10.0

    def test_free_provider_gets_full_price_credit(self):
        engine = make_engine([])
        score = engine.score(make_listing(price_per_hour=1000), make_requirements(), now=T0)
        assert score.price == pytest.approx(20.0)


@pytest.mark.unit
class TestSelection:
    """Test deterministic best-candidate selection."""

    def test_highest_score_wins(self):
        low = make_listing(key="Low", reputation_score=1000)
        high = make_listing(key="High", reputation_score=9000)
        match = asyncio.run(make_engine([low, high]).find_best_match(make_requirements()))
        assert match.public_key == "High"

    def test_ties_go_to_first_listed(self):
        first = make_listing(key="First", host="HostA")
        second = make_listing(key="Second", host="HostB")

        forward = asyncio.run(make_engine([first, second]).find_best_match(make_requirements()))
        backward = asyncio.run(make_engine([second, first]).find_best_match(make_requirements()))

        assert forward.public_key == "First"
        assert backward.public_key == "Second"

    def test_stale_heartbeat_loses(self):
        clock = FakeClock(T0 + 60)
        stale = make_listing(key="Stale", last_updated=T0)
        fresh = make_listing(key="Fresh", last_updated=T0 + 60)
        match = asyncio.run(make_engine([stale, fresh], clock=clock).find_best_match(make_requirements()))
        assert match.public_key == "Fresh"


@pytest.mark.unit
class TestDispatch:
    """Test dispatch through the host channel."""

    def test_accepted_dispatch(self):
        channel = RecordingHostChannel(accept=True)
        engine = make_engine([], host_channel=channel)
        listing = make_listing()

        assert asyncio.run(engine.dispatch_job_to_host(listing, make_payload())) is True
        assert channel.sent[0][0] == listing

    def test_declined_dispatch(self):
        engine = make_engine([], host_channel=RecordingHostChannel(accept=False))
        assert asyncio.run(engine.dispatch_job_to_host(make_listing(), make_payload())) is False

    def test_dispatch_failure_becomes_false(self):
        channel = RecordingHostChannel(error=DispatchFailure("connection refused"))
        engine = make_engine([], host_channel=channel)
        assert asyncio.run(engine.dispatch_job_to_host(make_listing(), make_payload())) is False

    def test_unexpected_errors_propagate(self):
        channel = RecordingHostChannel(error=RuntimeError("boom"))
        engine = make_engine([], host_channel=channel)
        with pytest.raises(RuntimeError):
            asyncio.run(engine.dispatch_job_to_host(make_listing(), make_payload()))


@pytest.mark.property
@pytest.mark.parametrize("seed", range(25))
def test_match_always_satisfies_constraints(seed):
    """Any returned provider is idle, meets every constraint and scores highest."""
    rng = random.Random(seed)
    listings = [random_listing(rng, i) for i in range(rng.randint(0, 30))]
    requirements = random_requirements(rng)
    engine = make_engine(listings)

    match = asyncio.run(engine.find_best_match(requirements))
    eligible = [l for l in listings if MatchingEngine.is_eligible(l, requirements)]

    if not eligible:
        assert match is None
        return

    assert match is not None
    assert match.status is ProviderStatus.IDLE
    assert match.specs.vram_gb >= requirements.required_vram
    assert match.specs.compute_rating >= requirements.min_compute_rating
    assert match.specs.price_per_hour // 3600 <= requirements.max_price_per_second

    best_total = engine.score(match, requirements, T0).total
    assert all(engine.score(l, requirements, T0).total <= best_total for l in eligible)


@pytest.mark.property
@pytest.mark.parametrize("seed", range(25))
def test_score_is_monotonic(seed):
    """More VRAM, compute or reputation never lowers the score; a higher price never raises the price term."""
    rng = random.Random(seed)
    engine = make_engine([])
    requirements = random_requirements(rng)
    listing = random_listing(rng, 0)
    base = engine.score(listing, requirements, T0)

    more_vram = dataclasses.replace(
        listing, specs=dataclasses.replace(listing.specs, vram_gb=listing.specs.vram_gb + rng.randint(1, 64))
    )
    more_compute = dataclasses.replace(
        listing,
        specs=dataclasses.replace(listing.specs, compute_rating=listing.specs.compute_rating + rng.randint(1, 20000)),
    )
    more_reputation = dataclasses.replace(
        listing, reputation_score=min(10000, listing.reputation_score + rng.randint(1, 5000))
    )
    pricier = dataclasses.replace(
        listing,
        specs=dataclasses.replace(listing.specs, price_per_hour=listing.specs.price_per_hour + rng.randint(1, 20000)),
    )

    assert engine.score(more_vram, requirements, T0).total >= base.total
    assert engine.score(more_compute, requirements, T0).total >= base.total
    assert engine.score(more_reputation, requirements, T0).total >= base.total
    assert engine.score(pricier, requirements, T0).price <= base.price
