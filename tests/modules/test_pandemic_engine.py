"""Tests for the pandemic engine and transmission policy."""

from datetime import datetime, UTC, timedelta

import numpy as np
import pytest

from epidemic_spaces import Command, PreconditionError, Scheduler
from epidemic_spaces.modules.occupancy import Overlap
from epidemic_spaces.modules.pandemic import (
    InfectionStatus,
    PandemicCmd,
    PandemicConfig,
    PandemicEngine,
    TransmissionPolicy,
)

START = datetime(2025, 1, 15, 0, 0, 0, tzinfo=UTC)


def hours(h: float) -> datetime:
    return START + timedelta(hours=h)


def make_engine(seed: int = 42, **config) -> PandemicEngine:
    """Engine with a fresh seeded generator and no initial infections."""
    config.setdefault("initial_infection_rate", 0.0)
    return PandemicEngine(np.random.default_rng(seed), PandemicConfig(**config))


@pytest.fixture
def scheduler():
    return Scheduler(START)


@pytest.fixture
def engine(scheduler):
    """Initialized engine where every eligible contact transmits."""
    eng = make_engine(transmission_probability=1.0, hospitalization_probability=0.0)
    eng.initialize(START, [], scheduler)
    return eng


class TestPreconditions:
    """Integration errors are fatal."""

    def test_double_initialize(self, scheduler):
        """initialize() may only run once."""
        eng = make_engine()
        eng.initialize(START, [1, 2, 3], scheduler)

        with pytest.raises(PreconditionError, match="already initialized"):
            eng.initialize(START, [1, 2, 3], scheduler)

    def test_transmission_before_initialize(self, scheduler):
        """Contacts cannot be processed before initialize()."""
        eng = make_engine()

        with pytest.raises(PreconditionError, match="before initialize"):
            eng.transmission(hours(1), 1, [Overlap(2, timedelta(hours=2))], scheduler)

    def test_command_before_initialize(self):
        """Commands cannot be handled before initialize()."""
        eng = make_engine()

        with pytest.raises(PreconditionError):
            eng.handle_cmd(hours(1), PandemicCmd.become_hospitalized(1))

    def test_ride_before_initialize(self):
        """Ride tracking is state too."""
        eng = make_engine()

        with pytest.raises(PreconditionError):
            eng.start_ride(1, "bus")

    @pytest.mark.parametrize("low,high", [(2, 1), (1, 1)])
    def test_empty_delay_range(self, low, high):
        """An empty or inverted delay range is rejected."""
        with pytest.raises(PreconditionError, match="delay range"):
            PandemicConfig(
                hospitalization_delay_min=timedelta(hours=low),
                hospitalization_delay_max=timedelta(hours=high),
            )

    def test_invalid_probability(self):
        """Probabilities must be within [0, 1]."""
        with pytest.raises(ValueError, match="transmission_probability"):
            PandemicConfig(transmission_probability=1.5)


class TestInitialization:
    """Seeding the initial infections."""

    def test_rate_one_infects_everyone(self, scheduler):
        eng = make_engine(initial_infection_rate=1.0, hospitalization_probability=0.0)

        result = eng.initialize(START, ["a", "b", "c"], scheduler)

        assert eng.infected == frozenset({"a", "b", "c"})
        assert [t.reason for t in result.transitions] == ["initial"] * 3
        assert all(t.time == START for t in result.transitions)

    def test_rate_zero_infects_nobody(self, scheduler):
        eng = make_engine()

        eng.initialize(START, range(100), scheduler)

        assert eng.infected == frozenset()

    def test_seeded_fraction(self, scheduler):
        """About a tenth of a large population starts infected."""
        eng = PandemicEngine(np.random.default_rng(3))

        eng.initialize(START, range(10_000), scheduler)

        assert abs(len(eng.infected) / 10_000 - 0.1) < 0.02


class TestTransmission:
    """The transmission rule."""

    def test_exact_threshold_excluded(self, engine, scheduler):
        """An overlap of exactly one hour does not count."""
        engine.introduce_infection(START, "a", scheduler)

        result = engine.transmission(hours(3), "a", [Overlap("b", timedelta(hours=1))], scheduler)

        assert result.transitions == []
        assert "b" not in engine.infected

    def test_infected_leaver_infects_other(self, engine, scheduler):
        engine.introduce_infection(START, "a", scheduler)

        result = engine.transmission(hours(4), "a", [Overlap("b", timedelta(hours=2))], scheduler)

        assert engine.infected == frozenset({"a", "b"})
        change = result.transitions[0]
        assert change.person_id == "b"
        assert change.source_person_id == "a"
        assert change.time == hours(4)
        assert change.previous is InfectionStatus.SUSCEPTIBLE

    def test_susceptible_leaver_gets_infected(self, engine, scheduler):
        engine.introduce_infection(START, "b", scheduler)

        engine.transmission(hours(4), "a", [Overlap("b", timedelta(hours=2))], scheduler)

        assert engine.status_of("a") is InfectionStatus.INFECTED

    def test_same_status_pairs_draw_nothing(self, scheduler):
        """Ineligible pairs never advance the generator."""
        rng = np.random.default_rng(11)
        eng = PandemicEngine(rng, PandemicConfig(initial_infection_rate=0.0))
        eng.initialize(START, [], scheduler)
        eng.introduce_infection(START, "a", scheduler)
        eng.introduce_infection(START, "b", scheduler)
        before = rng.bit_generator.state

        eng.transmission(hours(5), "a", [Overlap("b", timedelta(hours=5))], scheduler)
        eng.transmission(hours(5), "c", [Overlap("d", timedelta(hours=5))], scheduler)

        assert rng.bit_generator.state == before

    def test_batch_sees_earlier_infections(self, engine, scheduler):
        """Later pairs of one leave observe infections from earlier pairs."""
        engine.introduce_infection(START, "b", scheduler)

        engine.transmission(
            hours(4),
            "a",
            [Overlap("b", timedelta(hours=2)), Overlap("c", timedelta(hours=2))],
            scheduler,
        )

        # a caught it from b, then passed it on to c in the same batch
        assert engine.infected == frozenset({"a", "b", "c"})

    def test_empirical_rate_converges(self, scheduler):
        """With p=0.1, about one in ten eligible contacts transmits."""
        eng = PandemicEngine(np.random.default_rng(2024), PandemicConfig(initial_infection_rate=0.0))
        eng.initialize(START, [], scheduler)

        trials = 20_000
        for i in range(trials):
            eng.introduce_infection(START, ("src", i), scheduler)
            eng.transmission(
                hours(4), ("src", i), [Overlap(("dst", i), timedelta(hours=2))], scheduler
            )

        infected = sum(1 for i in range(trials) if ("dst", i) in eng.infected)
        assert abs(infected / trials - 0.1) < 0.01


class TestPolicy:
    """TransmissionPolicy eligibility."""

    def test_eligibility(self):
        policy = TransmissionPolicy(PandemicConfig())
        two_hours = timedelta(hours=2)

        assert policy.is_eligible(True, False, two_hours)
        assert policy.is_eligible(False, True, two_hours)
        assert not policy.is_eligible(True, True, two_hours)
        assert not policy.is_eligible(False, False, two_hours)
        assert not policy.is_eligible(True, False, timedelta(hours=1))


class TestHospitalization:
    """Scheduling and applying hospitalization."""

    def test_schedules_within_delay_range(self, scheduler):
        eng = make_engine(hospitalization_probability=1.0)
        eng.initialize(START, [], scheduler)

        result = eng.introduce_infection(hours(1), "a", scheduler)

        assert len(result.scheduled) == 1
        when, cmd = result.scheduled[0]
        assert hours(2) <= when < hours(4)
        assert cmd == PandemicCmd.become_hospitalized("a")
        assert scheduler.pending() == [(when, Command("pandemic", cmd))]

    def test_delays_cover_range(self, scheduler):
        """Delays are spread over [1h, 3h)."""
        eng = make_engine(hospitalization_probability=1.0)
        eng.initialize(START, [], scheduler)

        delays = []
        for i in range(500):
            result = eng.introduce_infection(START, i, scheduler)
            delays.append(result.scheduled[0][0] - START)

        assert min(delays) >= timedelta(hours=1)
        assert max(delays) < timedelta(hours=3)
        assert max(delays) - min(delays) > timedelta(hours=1.5)

    def test_no_hospitalization_when_probability_zero(self, engine, scheduler):
        engine.introduce_infection(START, "a", scheduler)

        assert len(scheduler) == 0

    def test_delivered_command_hospitalizes(self, scheduler):
        eng = make_engine(hospitalization_probability=1.0)
        eng.initialize(START, [], scheduler)
        scheduler.register_handler("pandemic", eng.handle_cmd)

        eng.introduce_infection(START, "a", scheduler)
        scheduler.run_until(hours(3))

        assert eng.hospitalized == frozenset({"a"})
        assert eng.status_of("a") is InfectionStatus.HOSPITALIZED

    def test_command_applies_unconditionally(self, engine):
        """Hospitalization does not re-check infection status."""
        result = engine.handle_cmd(hours(1), PandemicCmd.become_hospitalized("ghost"))

        assert "ghost" in engine.hospitalized
        assert result.transitions[0].previous is InfectionStatus.SUSCEPTIBLE


class TestRides:
    """Ride map bookkeeping."""

    def test_start_and_end_ride(self, engine):
        engine.start_ride("a", "bus_1")
        assert engine.ride_map == {"a": "bus_1"}

        assert engine.end_ride("a") == "bus_1"
        assert engine.end_ride("a") is None
        assert engine.ride_map == {}


def run_script(seed: int) -> list:
    """Drive an engine through a fixed script, snapshotting state as it goes."""
    scheduler = Scheduler(START)
    eng = PandemicEngine(np.random.default_rng(seed))
    scheduler.register_handler("pandemic", eng.handle_cmd)
    eng.initialize(START, range(200), scheduler)

    snapshots = []
    for step in range(1, 50):
        now = hours(step)
        scheduler.run_until(now)
        leaver = step % 200
        overlaps = [Overlap((leaver + k) % 200, timedelta(minutes=30 * k)) for k in range(1, 8)]
        eng.transmission(now, leaver, overlaps, scheduler)
        snapshots.append((eng.infected, eng.hospitalized))
    return snapshots


class TestDeterminism:
    """Same seed, same inputs, same trajectory."""

    def test_same_seed_same_trajectory(self):
        assert run_script(7) == run_script(7)

    def test_different_seed_differs(self):
        assert run_script(7) != run_script(8)

    def test_export_restore_continues_identically(self, scheduler):
        """A restored engine continues the same random stream."""
        original = make_engine(seed=5, transmission_probability=0.5)
        original.initialize(START, [], scheduler)
        original.introduce_infection(START, "a", scheduler)
        original.start_ride("a", "bus")

        restored = make_engine(seed=999, transmission_probability=0.5)
        restored.restore_state(original.export_state())

        assert restored.infected == original.infected
        assert restored.ride_map == {"a": "bus"}

        contacts = [Overlap(i, timedelta(hours=2)) for i in range(50)]
        original.transmission(hours(3), "a", contacts, Scheduler(START))
        restored.transmission(hours(3), "a", contacts, Scheduler(START))

        assert restored.infected == original.infected
