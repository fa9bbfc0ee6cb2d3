"""
推荐结果模型
"""

from typing import Hashable


class Recommendation:
    """推荐结果实体类，每个 (用户, 帖子) 最多一条"""

    def __init__(self, user_id: Hashable, post_id: Hashable, score: float):
        """
        初始化推荐结果

        Args:
            user_id: 被推荐的用户ID
            post_id: 推荐帖子ID
            score: 推荐分数（相似用户的 相似度 × 权重 之和）
        """
        self.user_id = user_id
        self.post_id = post_id
        self.score = float(score)

    def __iter__(self):
        return iter((self.user_id, self.post_id, self.score))

    def __eq__(self, other) -> bool:
        if not isinstance(other, Recommendation):
            return NotImplemented
        return tuple(self) == tuple(other)

    def __hash__(self) -> int:
        return hash(tuple(self))

    def __repr__(self) -> str:
        return f"Recommendation(user_id={self.user_id}, post_id={self.post_id}, score={self.score:.6f})"
