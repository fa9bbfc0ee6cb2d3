"""
用户相似度模型
"""

from typing import Hashable


class UserSimilarity:
    """
    一对用户的余弦相似度

    user_id1 < user_id2，每个无序用户对只保存一次
    """

    def __init__(self, user_id1: Hashable, user_id2: Hashable, similarity: float):
        if user_id1 == user_id2:
            raise ValueError(f"A user is never compared to itself: {user_id1}")
        if user_id2 < user_id1:
            user_id1, user_id2 = user_id2, user_id1
        self.user_id1 = user_id1
        self.user_id2 = user_id2
        self.similarity = float(similarity)

    def involves(self, user_id: Hashable) -> bool:
        return user_id == self.user_id1 or user_id == self.user_id2

    def other(self, user_id: Hashable) -> Hashable:
        """返回用户对中另一个用户的ID"""
        if user_id == self.user_id1:
            return self.user_id2
        if user_id == self.user_id2:
            return self.user_id1
        raise KeyError(f"User {user_id} is not part of {self!r}")

    def __iter__(self):
        return iter((self.user_id1, self.user_id2, self.similarity))

    def __eq__(self, other) -> bool:
        if not isinstance(other, UserSimilarity):
            return NotImplemented
        return tuple(self) == tuple(other)

    def __hash__(self) -> int:
        return hash(tuple(self))

    def __repr__(self) -> str:
        return f"UserSimilarity(user_id1={self.user_id1}, user_id2={self.user_id2}, similarity={self.similarity:.6f})"
