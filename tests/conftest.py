from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure `import post_recommender...` works when pytest uses importlib import mode.
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from post_recommender.models import UserPostScore  # noqa: E402


@pytest.fixture
def scenario_scores() -> list[UserPostScore]:
    """u1 shares p1 with u2 and p2 with u3; u2 and u3 share nothing."""
    return [
        UserPostScore("u1", "p1", 5),
        UserPostScore("u1", "p2", 3),
        UserPostScore("u2", "p1", 5),
        UserPostScore("u2", "p3", 4),
        UserPostScore("u3", "p2", 3),
    ]


@pytest.fixture
def random_scores() -> list[UserPostScore]:
    import numpy as np

    rng = np.random.default_rng(7)
    scores = []
    for user_id in range(40):
        posts = rng.choice(60, size=int(rng.integers(0, 8)), replace=False)
        for post_id in sorted(posts.tolist()):
            weight = float(rng.integers(0, 16))
            scores.append(UserPostScore(user_id, post_id, weight))
    return scores
