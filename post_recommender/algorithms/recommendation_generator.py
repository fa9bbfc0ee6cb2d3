"""
基于相似用户的帖子推荐生成
"""

from typing import Dict, Hashable, List, Mapping, Optional, Sequence, Tuple

from ..models import Recommendation, UserData, UserSimilarity
from ..utils.config import TOP_N_POSTS, TOP_N_SIMILARITY
from ..utils.exceptions import InvariantViolationError
from ..utils.logger import logger
from ..utils.parallel import flatten, map_partitions, map_reduce, merge_score_maps

Neighbor = Tuple[Hashable, float]


def select_neighbors(similarities: Sequence[UserSimilarity],
                     target_user_id: Hashable,
                     top_n_similarity: int = TOP_N_SIMILARITY) -> List[Neighbor]:
    """
    从用户对相似度列表中取出目标用户的前K个相似用户

    Args:
        similarities: UserSimilarity 列表（无序用户对）
        target_user_id: 目标用户ID
        top_n_similarity: 保留的相似用户数量

    Returns:
        [(相似用户ID, 相似度)]，相似度降序，相同时按用户ID升序；
        只保留相似度大于0的用户
    """
    neighbors = [
        (sim.other(target_user_id), sim.similarity)
        for sim in similarities
        if sim.involves(target_user_id) and sim.similarity > 0
    ]
    return rank_neighbors(neighbors, top_n_similarity)


def rank_neighbors(neighbors: List[Neighbor], top_n_similarity: int) -> List[Neighbor]:
    neighbors = sorted(neighbors, key=lambda x: (-x[1], x[0]))
    return neighbors[:max(0, top_n_similarity)]


def build_neighbor_index(similarities: Sequence[UserSimilarity]) -> Dict[Hashable, List[Neighbor]]:
    """把无序用户对展开成 用户 -> [(相似用户, 相似度)]，每个用户对出现两次"""
    index: Dict[Hashable, List[Neighbor]] = {}
    for sim in similarities:
        if sim.similarity <= 0:
            continue
        index.setdefault(sim.user_id1, []).append((sim.user_id2, sim.similarity))
        index.setdefault(sim.user_id2, []).append((sim.user_id1, sim.similarity))
    return index


class RecommendationGenerator:
    """
    用户协同过滤推荐生成器

    推荐分数 = Σ 相似用户相似度 × 相似用户对该帖子的权重，
    目标用户已经交互过的帖子不会被推荐
    """

    def __init__(self,
                 top_n_similarity: int = TOP_N_SIMILARITY,
                 top_n_posts: int = TOP_N_POSTS,
                 batch_size: Optional[int] = None,
                 parallel: bool = True,
                 progress_desc: Optional[str] = None):
        """
        Args:
            top_n_similarity: 参与打分的相似用户数量，默认100
            top_n_posts: 每个用户返回的推荐数量，默认500
            batch_size: 每批相似用户数量，默认 max(1, 相似用户数 / (并行度 * 4))
            parallel: 是否使用工作线程池
            progress_desc: 全量推荐时的进度条描述，None表示不显示
        """
        self.top_n_similarity = top_n_similarity
        self.top_n_posts = top_n_posts
        self.batch_size = batch_size
        self.parallel = parallel
        self.progress_desc = progress_desc

    def score_posts(self,
                    neighbors: List[Neighbor],
                    vectors: Mapping[Hashable, Mapping[Hashable, float]],
                    interacted: frozenset,
                    parallel: Optional[bool] = None) -> Dict[Hashable, float]:
        """
        按批次累加相似用户贡献的帖子分数

        每个批次返回自己的 {帖子: 分数} 字典，最后按批次顺序合并

        Raises:
            InvariantViolationError: 相似用户在 vectors 中不存在
        """
        if parallel is None:
            parallel = self.parallel

        def _score_batch(batch):
            partial: Dict[Hashable, float] = {}
            for neighbor_id, similarity in batch:
                vector = vectors.get(neighbor_id)
                if vector is None:
                    raise InvariantViolationError(f"Neighbor {neighbor_id} has no vector in this snapshot")
                for post_id, weight in vector.items():
                    # 跳过已经交互过的帖子
                    if post_id in interacted:
                        continue
                    partial[post_id] = partial.get(post_id, 0.0) + similarity * weight
            return partial

        return map_reduce(
            _score_batch,
            neighbors,
            reducer=merge_score_maps,
            initial={},
            batch_size=self.batch_size,
            parallel=parallel,
        )

    def rank_posts(self, user_id: Hashable, post_scores: Dict[Hashable, float]) -> List[Recommendation]:
        """分数降序（相同时按帖子ID升序）取前N个"""
        ranked = sorted(post_scores.items(), key=lambda x: (-x[1], x[0]))[:max(0, self.top_n_posts)]
        return [Recommendation(user_id=user_id, post_id=post_id, score=score) for post_id, score in ranked]

    def recommend(self,
                  similarities: Sequence[UserSimilarity],
                  vectors: Mapping[Hashable, Mapping[Hashable, float]],
                  interacted_sets: Mapping[Hashable, frozenset],
                  target_user_id: Hashable,
                  parallel: Optional[bool] = None) -> List[Recommendation]:
        """
        为单个用户生成推荐

        Args:
            similarities: UserSimilarity 列表
            vectors: 用户向量
            interacted_sets: 用户已交互帖子集合
            target_user_id: 目标用户ID
            parallel: 是否并发打分，默认使用构造参数

        Returns:
            Recommendation 列表（长度不超过 top_n_posts），目标用户没有向量时返回空列表
        """
        if target_user_id not in vectors:
            return []

        neighbors = select_neighbors(similarities, target_user_id, self.top_n_similarity)
        return self._recommend_from_neighbors(neighbors, vectors, interacted_sets, target_user_id, parallel)

    def _recommend_from_neighbors(self, neighbors, vectors, interacted_sets, target_user_id, parallel):
        if not neighbors:
            return []
        interacted = frozenset(interacted_sets.get(target_user_id, frozenset()))
        post_scores = self.score_posts(neighbors, vectors, interacted, parallel=parallel)
        return self.rank_posts(target_user_id, post_scores)

    def recommend_all(self,
                      similarities: Sequence[UserSimilarity],
                      user_data: UserData,
                      user_ids: Optional[Sequence[Hashable]] = None) -> List[Recommendation]:
        """
        为所有用户生成推荐

        每个用户独立计算，按用户批次并发执行；批次内部的打分顺序执行，
        避免在工作线程里再等待同一个线程池

        Args:
            similarities: 全量 UserSimilarity 列表
            user_data: 用户数据上下文
            user_ids: 需要推荐的用户，默认所有有向量的用户

        Returns:
            所有用户的推荐结果，按用户ID升序拼接
        """
        if user_ids is None:
            user_ids = user_data.user_ids
        else:
            user_ids = sorted(user_ids)
        if not user_ids:
            return []

        neighbor_index = build_neighbor_index(similarities)
        logger.info(f"Generating recommendations for {len(user_ids)} users")

        def _recommend_batch(batch):
            results = []
            for user_id in batch:
                if user_id not in user_data.vectors:
                    continue
                neighbors = rank_neighbors(neighbor_index.get(user_id, []), self.top_n_similarity)
                results.extend(self._recommend_from_neighbors(
                    neighbors, user_data.vectors, user_data.posts, user_id, parallel=False
                ))
            return results

        partials = map_partitions(_recommend_batch, user_ids, parallel=self.parallel,
                                  progress=self.progress_desc)
        return flatten(partials)
