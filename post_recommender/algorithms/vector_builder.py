"""
用户向量构建

从扁平的 UserPostScore 列表构建三个派生结构：
- 用户 -> 已交互帖子集合
- 用户 -> {帖子: 权重} 稀疏向量
- 用户 -> 向量范数
"""

from typing import Dict, Hashable, Sequence

from ..models import UserData
from ..utils.logger import logger
from ..utils.similarity import vector_norm


def build_user_data(scores: Sequence) -> UserData:
    """
    按用户分组构建用户数据上下文

    Args:
        scores: UserPostScore 列表

    Returns:
        只读的 UserData，空输入返回空映射
    """
    vectors: Dict[Hashable, Dict[Hashable, float]] = {}
    duplicates = 0
    for score in scores:
        vector = vectors.setdefault(score.user_id, {})
        if score.post_id in vector:
            duplicates += 1
            vector[score.post_id] += float(score.weight)
        else:
            vector[score.post_id] = float(score.weight)

    if duplicates:
        logger.debug(f"Summed {duplicates} duplicate user-post scores")

    posts = {user_id: frozenset(vector) for user_id, vector in vectors.items()}
    norms = {user_id: vector_norm(vector) for user_id, vector in vectors.items()}

    logger.info(f"Built vectors for {len(vectors)} users from {len(scores)} scores")
    return UserData(posts=posts, vectors=vectors, norms=norms)
