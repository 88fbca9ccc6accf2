"""Tests for next-action prediction."""

from __future__ import annotations

import pytest
import pytest_asyncio

from cellengine.core.config import KernelConfig
from cellengine.core.event import Event
from cellengine.engine.action_catalog import ActionCatalog
from cellengine.engine.predictor import (
    Predictor,
    describe_context,
    fuzzy_continuation,
    rank_continuations,
)

# ── Fixtures ─────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def predictor(storage, clock) -> Predictor:
    return Predictor(storage, ActionCatalog(storage), KernelConfig(), clock)


async def _log(storage, events) -> None:
    for event in events:
        await storage.append_event(event)


# ── rank_continuations ───────────────────────────────────────────


class TestRankContinuations:
    def test_requires_strict_prefix(self) -> None:
        patterns = {("a", "b"): 10, ("a", "b", "c"): 10, ("x", "a", "b", "d"): 10}
        ranked = rank_continuations(patterns, ("a", "b"), recency=1.0)

        assert [c.next_id for c in ranked] == ["c"]

    def test_filters_below_min_confidence(self) -> None:
        ranked = rank_continuations({("a", "b", "c"): 1}, ("a", "b"), recency=0.0)
        assert ranked == []

    def test_ties_broken_by_key(self) -> None:
        patterns = {("a", "b", "d"): 8, ("a", "b", "c"): 8}
        ranked = rank_continuations(patterns, ("a", "b"), recency=1.0)

        assert [c.next_id for c in ranked] == ["c", "d"]

    def test_higher_confidence_first(self) -> None:
        patterns = {("a", "b", "c"): 3, ("a", "b", "d"): 9}
        ranked = rank_continuations(patterns, ("a", "b"), recency=1.0)

        assert ranked[0].next_id == "d"
        assert ranked[0].confidence > ranked[1].confidence


# ── fuzzy_continuation ───────────────────────────────────────────


class TestFuzzyContinuation:
    def test_votes_for_followers_of_similar_events(self, make_event) -> None:
        last = make_event("u9", "/users/9")
        log = [
            make_event("u1", "/users/1"),
            make_event("d1", "/details"),
            make_event("u2", "/users/2"),
            make_event("d1", "/details"),
            make_event("u3", "/users/3"),
            make_event("x1", "/other"),
            last,
        ]
        match = fuzzy_continuation(last, log)

        assert match is not None
        assert match.next_id == "d1"
        assert match.votes == 2
        assert match.total == 3
        assert match.confidence == pytest.approx(2 / 3)

    def test_equal_votes_pick_first_seen(self, make_event) -> None:
        last = make_event("u9", "/users/9")
        log = [
            make_event("u1", "/users/1"),
            make_event("p", "/p"),
            make_event("u2", "/users/2"),
            make_event("q", "/q"),
            last,
        ]
        match = fuzzy_continuation(last, log)

        assert match is not None
        assert match.next_id == "p"

    def test_no_similar_events(self, make_event) -> None:
        last = make_event("z", "/zzzzzz")
        assert fuzzy_continuation(last, [make_event("a", "/a"), last]) is None

    def test_similar_event_without_follower(self, make_event) -> None:
        last = make_event("u9", "/users/9")
        assert fuzzy_continuation(last, [last, make_event("u1", "/users/1")]) is None

    def test_skips_malformed_history(self, make_event) -> None:
        last = make_event("u9", "/users/9")
        log = [
            Event(id="bad", signature="garbage", timestamp=0),
            make_event("u1", "/users/1"),
            make_event("d1", "/details"),
        ]
        match = fuzzy_continuation(last, log)
        assert match is not None
        assert match.next_id == "d1"


def test_describe_context(make_event) -> None:
    assert describe_context(make_event("e", "/a", "post")) == "After POST request to /a"


# ── Predictor ────────────────────────────────────────────────────


class TestPredictor:
    @pytest.mark.asyncio
    async def test_short_window_predicts_nothing(self, predictor, make_event) -> None:
        assert await predictor.predict([]) is None
        assert await predictor.predict([make_event("e1")]) is None

    @pytest.mark.asyncio
    async def test_worked_example(self, predictor, storage, make_event) -> None:
        """A count-8 three-token pattern in a current context scores ~0.67."""
        e1 = make_event("E1", "/a")
        e2 = make_event("E2", "/b")
        e3 = make_event("E3", "/c", "POST")
        await _log(storage, [e1, e2, e3])
        await storage.add_pattern_counts({("E1", "E2", "E3"): 8})

        prediction = await predictor.predict([e1, e2])

        assert prediction is not None
        assert prediction.confidence == pytest.approx(0.67)
        assert prediction.action.id == "E3"
        assert prediction.action.description == "POST /c"
        assert prediction.context == "After GET request to /b"

    @pytest.mark.asyncio
    async def test_longest_prefix_wins(self, predictor, storage, make_event) -> None:
        events = [make_event(i, f"/{i}") for i in ("a", "b", "c", "x", "y")]
        await _log(storage, events)
        await storage.add_pattern_counts({("b", "c", "x"): 9, ("a", "b", "c", "y"): 2})

        prediction = await predictor.predict(events[:3])

        assert prediction is not None
        assert prediction.action.id == "y"

    @pytest.mark.asyncio
    async def test_equal_confidence_is_deterministic(self, predictor, storage, make_event) -> None:
        events = [make_event(i, f"/{i}") for i in ("a", "b", "c", "d")]
        await _log(storage, events)
        await storage.add_pattern_counts({("a", "b", "d"): 8, ("a", "b", "c"): 8})

        prediction = await predictor.predict(events[:2])

        assert prediction is not None
        assert prediction.action.id == "c"

    @pytest.mark.asyncio
    async def test_unresolvable_continuation_is_skipped(
        self, predictor, storage, make_event
    ) -> None:
        events = [make_event(i, f"/{i}") for i in ("a", "b", "c")]
        await _log(storage, events)
        await storage.add_pattern_counts({("a", "b", "ghost"): 10, ("a", "b", "c"): 4})

        prediction = await predictor.predict(events[:2])

        assert prediction is not None
        assert prediction.action.id == "c"

    @pytest.mark.asyncio
    async def test_falls_back_to_fuzzy(self, predictor, storage, make_event) -> None:
        log = [
            make_event("u1", "/users/1"),
            make_event("d1", "/details"),
            make_event("w", "/welcome"),
            make_event("u2", "/users/2"),
        ]
        await _log(storage, log)

        prediction = await predictor.predict(log[-2:])

        assert prediction is not None
        assert prediction.action.id == "d1"
        assert prediction.confidence == 1.0
        assert prediction.context == "After GET request to /users/2"

    @pytest.mark.asyncio
    async def test_no_evidence(self, predictor, storage, make_event) -> None:
        events = [make_event("a", "/a"), make_event("b", "/bbbbbbbb")]
        await _log(storage, events)
        assert await predictor.predict(events) is None

    @pytest.mark.asyncio
    async def test_malformed_last_event(self, predictor, storage, make_event) -> None:
        events = [make_event("a", "/a"), Event(id="bad", signature="broken", timestamp=0)]
        await _log(storage, events)
        assert await predictor.predict(events) is None

    @pytest.mark.asyncio
    async def test_stale_context_lowers_confidence(
        self, storage, clock, make_event
    ) -> None:
        e1, e2, e3 = (make_event(i, f"/{i}") for i in ("E1", "E2", "E3"))
        await _log(storage, [e1, e2, e3])
        await storage.add_pattern_counts({("E1", "E2", "E3"): 8})
        clock.advance(10 * 3_600_000)
        predictor = Predictor(storage, ActionCatalog(storage), KernelConfig(), clock)

        prediction = await predictor.predict([e1, e2])

        assert prediction is not None
        assert prediction.confidence == pytest.approx(0.57, abs=1e-3)
