"""
用户-帖子交互权重模型
"""

from typing import Hashable


class UserPostScore:
    """每个 (用户, 帖子) 组合聚合后的交互权重"""

    def __init__(self, user_id: Hashable, post_id: Hashable, weight: float):
        """
        Args:
            user_id: 用户ID
            post_id: 帖子ID
            weight: 交互权重，非负浮点数
        """
        self.user_id = user_id
        self.post_id = post_id
        self.weight = float(weight)

    def __iter__(self):
        return iter((self.user_id, self.post_id, self.weight))

    def __eq__(self, other) -> bool:
        if not isinstance(other, UserPostScore):
            return NotImplemented
        return tuple(self) == tuple(other)

    def __hash__(self) -> int:
        return hash(tuple(self))

    def __repr__(self) -> str:
        return f"UserPostScore(user_id={self.user_id}, post_id={self.post_id}, weight={self.weight})"
