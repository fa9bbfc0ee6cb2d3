from __future__ import annotations

import math

import pytest

from post_recommender.algorithms.vector_builder import build_user_data
from post_recommender.models import UserPostScore


def test_build_user_data_groups_scores_by_user(scenario_scores) -> None:
    data = build_user_data(scenario_scores)

    assert data.user_ids == ["u1", "u2", "u3"]
    assert dict(data.vectors["u1"]) == {"p1": 5.0, "p2": 3.0}
    assert data.posts["u2"] == frozenset({"p1", "p3"})
    assert data.norms["u1"] == pytest.approx(math.sqrt(34))
    assert data.norms["u2"] == pytest.approx(math.sqrt(41))
    assert data.norms["u3"] == pytest.approx(3.0)


def test_posts_vectors_and_norms_are_consistent(random_scores) -> None:
    data = build_user_data(random_scores)

    assert set(data.posts) == set(data.vectors) == set(data.norms)
    for user_id, vector in data.vectors.items():
        assert data.posts[user_id] == frozenset(vector)
        assert data.norms[user_id] == pytest.approx(math.sqrt(sum(w * w for w in vector.values())))


def test_zero_weight_vector_has_zero_norm() -> None:
    data = build_user_data([UserPostScore(1, 1, 0.0), UserPostScore(1, 2, 0.0)])

    assert data.norms[1] == 0.0
    assert data.posts[1] == frozenset({1, 2})


def test_empty_input_yields_empty_mappings() -> None:
    data = build_user_data([])

    assert len(data) == 0
    assert dict(data.vectors) == {}
    assert dict(data.norms) == {}


def test_user_data_is_read_only(scenario_scores) -> None:
    data = build_user_data(scenario_scores)

    with pytest.raises(TypeError):
        data.vectors["u1"]["p9"] = 1.0
    with pytest.raises(TypeError):
        data.norms["u9"] = 1.0
