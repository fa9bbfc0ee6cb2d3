from __future__ import annotations

import pandas as pd
import pytest

from post_recommender.models import Recommendation
from post_recommender.services.cache import RecommendationCache
from post_recommender.services.data_loader import InteractionLoader
from post_recommender.services.output_writer import RecommendationStore
from post_recommender.utils.exceptions import CacheError, DataLoadError, DataValidationError
from post_recommender.utils.validation import validate_recommendation_list


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def _write_interactions(path, rows) -> str:
    pd.DataFrame(rows).to_csv(path, index=False)
    return str(path)


def test_loader_reads_and_aggregates_csv(tmp_path) -> None:
    path = _write_interactions(
        tmp_path / "interactions.csv",
        [
            {"user_id": 1, "post_id": 10, "view_count": 8, "favorite": "true", "timestamp": "2024-05-01 10:00:00"},
            {"user_id": 1, "post_id": 11, "view_count": 2, "favorite": "false", "timestamp": "2024-05-01 11:00:00"},
            {"user_id": 2, "post_id": 10, "view_count": None, "favorite": "1", "timestamp": "not a date"},
        ],
    )
    loader = InteractionLoader(path)

    df = loader.load_interactions()
    assert df["favorite"].tolist() == [True, False, True]
    assert df["view_count"].tolist() == [8, 2, 0]
    assert df["timestamp"].isna().tolist() == [False, False, True]

    scores = loader.fetch_all_weights()
    assert [tuple(s) for s in scores] == [(1, 10, 15.0), (1, 11, 2.0), (2, 10, 10.0)]


def test_loader_missing_file(tmp_path) -> None:
    with pytest.raises(DataLoadError):
        InteractionLoader(str(tmp_path / "missing.csv")).load_interactions()


def test_loader_missing_column(tmp_path) -> None:
    path = _write_interactions(tmp_path / "bad.csv", [{"user_id": 1, "post_id": 2, "view_count": 3}])

    with pytest.raises(DataValidationError):
        InteractionLoader(path).fetch_all_weights()


def test_cache_entries_expire() -> None:
    clock = FakeClock()
    cache = RecommendationCache(default_ttl=10, clock=clock)

    cache.put("u1", ["p3", "p1"])
    assert cache.get("u1") == ["p3", "p1"]

    clock.now += 9.5
    assert len(cache) == 1
    clock.now += 1
    assert cache.get("u1") is None
    assert len(cache) == 0
    assert (cache.hits, cache.misses) == (1, 1)


def test_cache_returns_copies_and_invalidates() -> None:
    cache = RecommendationCache()
    cache.put(1, [5, 6])

    cache.get(1).append(7)
    assert cache.get(1) == [5, 6]

    cache.invalidate(1)
    assert cache.get(1) is None


def test_cache_rejects_non_positive_ttl() -> None:
    with pytest.raises(CacheError):
        RecommendationCache(default_ttl=0)
    with pytest.raises(CacheError):
        RecommendationCache().put(1, [2], ttl=-1)


def test_store_upsert_replaces_existing_pairs() -> None:
    store = RecommendationStore()

    assert store.upsert([Recommendation(1, 10, 0.5), Recommendation(1, 11, 0.7)]) == 2
    assert store.upsert([Recommendation(1, 10, 0.9), Recommendation(2, 10, 0.1)]) == 2
    assert store.upsert([]) == 0

    assert len(store) == 3
    recs = store.get_user_recommendations(1)
    assert [(r.post_id, r.score) for r in recs] == [(10, 0.9), (11, 0.7)]
    assert list(store.to_frame().columns) == ["user_id", "post_id", "score", "updated_at"]


def test_store_write_csv_creates_directory(tmp_path) -> None:
    store = RecommendationStore()
    store.upsert([Recommendation(2, 10, 0.1), Recommendation(1, 11, 0.7), Recommendation(1, 10, 0.9)])
    output = tmp_path / "out" / "recommend_posts.csv"

    store.write_csv(str(output))

    written = pd.read_csv(output)
    assert written[["user_id", "post_id"]].values.tolist() == [[1, 10], [1, 11], [2, 10]]


def test_validate_recommendation_list() -> None:
    validate_recommendation_list([Recommendation(1, 10, 0.5), Recommendation(1, 11, 0.0)], top_n=2)
    with pytest.raises(DataValidationError):
        validate_recommendation_list([Recommendation(1, 10, 0.5)] * 2, top_n=5)
    with pytest.raises(DataValidationError):
        validate_recommendation_list([Recommendation(1, 10, 0.5), Recommendation(1, 11, 0.4)], top_n=1)
    with pytest.raises(DataValidationError):
        validate_recommendation_list([Recommendation(1, None, 0.5)], top_n=1)


def test_cache_put_many_writes_all_entries_or_none() -> None:
    clock = FakeClock()
    cache = RecommendationCache(default_ttl=10, clock=clock)

    with pytest.raises(CacheError):
        cache.put_many({1: [5], 2: [6]}, ttl=0)
    assert len(cache) == 0

    cache.put_many({1: [5], 2: []})
    assert cache.get(1) == [5]
    assert cache.get(2) == []
    clock.now += 11
    assert len(cache) == 0


def test_store_restore_replaces_contents() -> None:
    store = RecommendationStore()
    store.upsert([Recommendation(1, 10, 0.5)])
    snapshot = store.to_frame()

    store.upsert([Recommendation(1, 10, 0.9), Recommendation(2, 11, 0.3)])
    store.restore(snapshot)

    assert len(store) == 1
    assert [(r.post_id, r.score) for r in store.get_user_recommendations(1)] == [(10, 0.5)]
