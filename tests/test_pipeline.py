from __future__ import annotations

import threading
import time

import pandas as pd
import pytest

from post_recommender.models import UserPostScore
from post_recommender.services.cache import RecommendationCache
from post_recommender.services.output_writer import RecommendationStore
from post_recommender.services.pipeline import RecommendationPipeline
from post_recommender.utils.exceptions import (
    CacheError,
    DataLoadError,
    DataValidationError,
    InvariantViolationError,
    RunCancelledError,
)

SIM_U1_U2 = 25 / (34 ** 0.5 * 41 ** 0.5)


def _pipeline(scores, **kwargs):
    cache = RecommendationCache()
    store = RecommendationStore()
    pipeline = RecommendationPipeline(lambda: list(scores), cache=cache, store=store, **kwargs)
    return pipeline, cache, store


def test_run_for_user_persists_results(scenario_scores) -> None:
    pipeline, cache, store = _pipeline(scenario_scores)

    recs = pipeline.run_for_user("u1")

    assert [(r.user_id, r.post_id) for r in recs] == [("u1", "p3")]
    assert recs[0].score == pytest.approx(SIM_U1_U2 * 4)
    assert cache.get("u1") == ["p3"]
    assert [r.post_id for r in store.get_user_recommendations("u1")] == ["p3"]
    assert pipeline.last_run_stats["scores"] == 5
    assert pipeline.last_run_stats["users"] == 3
    assert pipeline.last_run_stats["similarity_pairs"] == 1
    assert pipeline.last_run_stats["recommendations"] == 1
    assert "fetch_all_weights_ms" in pipeline.last_run_stats


def test_run_for_all_users_skips_users_without_positive_weight(scenario_scores) -> None:
    scores = scenario_scores + [UserPostScore("u4", "p1", 0.0)]
    pipeline, cache, store = _pipeline(scores)

    recs = pipeline.run_for_all_users()

    assert [(r.user_id, r.post_id) for r in recs] == [("u1", "p3"), ("u2", "p2"), ("u3", "p1")]
    assert pipeline.last_run_stats["skipped_users"] == 1
    assert pipeline.last_run_stats["users"] == 4
    assert cache.get("u4") is None
    assert len(store) == 3


def test_rerun_is_idempotent(scenario_scores) -> None:
    pipeline, _, store = _pipeline(scenario_scores)

    first = pipeline.run_for_all_users()
    second = pipeline.run_for_all_users()

    assert [tuple(r) for r in first] == [tuple(r) for r in second]
    assert len(store) == 3


def test_unknown_user_is_skipped_without_writes(scenario_scores) -> None:
    pipeline, cache, store = _pipeline(scenario_scores)

    assert pipeline.run_for_user("nobody") == []
    assert pipeline.last_run_stats["skipped_users"] == 1
    assert len(store) == 0
    assert len(cache) == 0


def test_fetch_failure_writes_nothing() -> None:
    def _broken_fetch():
        raise ConnectionError("database unavailable")

    cache = RecommendationCache()
    store = RecommendationStore()
    pipeline = RecommendationPipeline(_broken_fetch, cache=cache, store=store)

    with pytest.raises(DataLoadError) as exc_info:
        pipeline.run_for_all_users()

    assert isinstance(exc_info.value.__cause__, ConnectionError)
    assert len(store) == 0
    assert len(cache) == 0


def test_fetch_timeout_raises_data_load_error(scenario_scores) -> None:
    release = threading.Event()

    def _slow_fetch():
        release.wait(5)
        return list(scenario_scores)

    store = RecommendationStore()
    pipeline = RecommendationPipeline(_slow_fetch, store=store, fetch_timeout=0.05)

    started = time.monotonic()
    try:
        with pytest.raises(DataLoadError, match="timed out"):
            pipeline.run_for_user("u1")
    finally:
        release.set()

    assert time.monotonic() - started < 2
    assert len(store) == 0


def test_invalid_snapshot_is_rejected(scenario_scores) -> None:
    duplicated = scenario_scores + [UserPostScore("u1", "p1", 1.0)]
    pipeline, _, store = _pipeline(duplicated)

    with pytest.raises(DataValidationError):
        pipeline.run_for_all_users()
    assert len(store) == 0


def test_cancelled_run_writes_nothing(scenario_scores) -> None:
    cancel = threading.Event()

    def _fetch_then_cancel():
        cancel.set()
        return list(scenario_scores)

    cache = RecommendationCache()
    store = RecommendationStore()
    pipeline = RecommendationPipeline(_fetch_then_cancel, cache=cache, store=store)

    with pytest.raises(RunCancelledError):
        pipeline.run_for_all_users(cancel_event=cancel)

    assert len(store) == 0
    assert len(cache) == 0


def test_failure_in_compute_stage_propagates(scenario_scores, monkeypatch) -> None:
    pipeline, cache, store = _pipeline(scenario_scores)

    def _broken(*args, **kwargs):
        raise InvariantViolationError("inconsistent snapshot")

    monkeypatch.setattr(pipeline.generator, "recommend_all", _broken)

    with pytest.raises(InvariantViolationError):
        pipeline.run_for_all_users()
    assert len(store) == 0
    assert len(cache) == 0


def test_get_recommended_posts_uses_cache(scenario_scores) -> None:
    calls = []

    def _fetch():
        calls.append(1)
        return list(scenario_scores)

    pipeline = RecommendationPipeline(_fetch, cache=RecommendationCache())

    assert pipeline.get_recommended_posts("u3") == ["p1"]
    assert pipeline.get_recommended_posts("u3") == ["p1"]
    assert len(calls) == 1


def test_sequential_pipeline_matches_parallel(random_scores) -> None:
    parallel, _, _ = _pipeline(random_scores, top_n_similarity=5, top_n_posts=3)
    sequential, _, _ = _pipeline(random_scores, top_n_similarity=5, top_n_posts=3, parallel=False)

    a = parallel.run_for_all_users()
    b = sequential.run_for_all_users()

    assert [(r.user_id, r.post_id) for r in a] == [(r.user_id, r.post_id) for r in b]
    for x, y in zip(a, b):
        assert x.score == pytest.approx(y.score, rel=1e-12)


def test_empty_snapshot_is_a_valid_run() -> None:
    pipeline, cache, store = _pipeline([])

    assert pipeline.run_for_all_users() == []
    assert pipeline.last_run_stats["users"] == 0
    assert len(store) == 0
    assert len(cache) == 0


def test_non_positive_cache_ttl_is_rejected_up_front(scenario_scores) -> None:
    with pytest.raises(CacheError):
        _pipeline(scenario_scores, cache_ttl=0)


def test_cache_failure_rolls_back_store(scenario_scores, monkeypatch) -> None:
    pipeline, cache, store = _pipeline(scenario_scores)
    pipeline.run_for_user("u1")
    before = store.to_frame()

    def _broken_put_many(*args, **kwargs):
        raise CacheError("cache unavailable")

    monkeypatch.setattr(cache, "put_many", _broken_put_many)

    with pytest.raises(CacheError):
        pipeline.run_for_all_users()

    pd.testing.assert_frame_equal(store.to_frame(), before)
    assert cache.get("u2") is None
