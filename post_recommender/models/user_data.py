"""
单次推荐任务的用户数据上下文
"""

from types import MappingProxyType
from typing import Dict, FrozenSet, Hashable, Mapping


class UserData:
    """
    由同一份交互快照构建的只读数据，贯穿整次推荐任务

    Attributes:
        posts: 用户ID -> 已交互帖子ID集合
        vectors: 用户ID -> {帖子ID: 权重}
        norms: 用户ID -> 向量L2范数
    """

    def __init__(self,
                 posts: Dict[Hashable, FrozenSet],
                 vectors: Dict[Hashable, Dict[Hashable, float]],
                 norms: Dict[Hashable, float]):
        self.posts: Mapping[Hashable, FrozenSet] = MappingProxyType(
            {user_id: frozenset(post_ids) for user_id, post_ids in posts.items()}
        )
        self.vectors: Mapping[Hashable, Mapping[Hashable, float]] = MappingProxyType(
            {user_id: MappingProxyType(dict(vector)) for user_id, vector in vectors.items()}
        )
        self.norms: Mapping[Hashable, float] = MappingProxyType(dict(norms))

    @property
    def user_ids(self):
        """按ID升序排列的用户列表"""
        return sorted(self.vectors.keys())

    def __len__(self) -> int:
        return len(self.vectors)

    def __repr__(self) -> str:
        return f"UserData(users={len(self.vectors)})"
