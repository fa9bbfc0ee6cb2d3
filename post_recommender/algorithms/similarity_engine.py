"""
用户相似度计算（倒排索引 + 分批累加）
"""

from typing import Hashable, List, Mapping, Optional, Sequence

import numpy as np
from scipy.sparse import coo_matrix, csc_matrix, csr_matrix, triu

from ..models import UserSimilarity
from ..utils.exceptions import InvariantViolationError
from ..utils.logger import logger
from ..utils.matrix_builder import bucket_sizes, build_user_post_matrix
from ..utils.parallel import batch_size_for, map_reduce
from ..utils.similarity import cosine_from_dot, validate_similarity_values


class SimilarityEngine:
    """
    基于倒排索引的用户余弦相似度计算

    只对至少共同交互过一个帖子的用户对计算点积，没有共同帖子的用户对
    相似度视为0且不会出现在结果中。帖子桶按批次并发处理，每个批次
    产生独立的部分点积矩阵，最后按批次顺序相加。
    """

    def __init__(self, batch_size: Optional[int] = None, parallel: bool = True):
        """
        Args:
            batch_size: 每批帖子桶数量，默认 max(1, 桶数 / (并行度 * 4))
            parallel: 是否使用工作线程池
        """
        self.batch_size = batch_size
        self.parallel = parallel

    def accumulate_pair_dots(self, matrix: csc_matrix, base_index: Optional[int] = None) -> csr_matrix:
        """
        累加用户对的点积

        Args:
            matrix: 用户×帖子权重矩阵（CSC），只含正权重
            base_index: 基准用户的行号，指定时只计算该用户与其他用户的点积

        Returns:
            n×n 稀疏矩阵，只在严格上三角 (i < j) 上有值，
            非零元素个数等于共同交互过帖子的用户对数量
        """
        n_users = matrix.shape[0]
        empty = csr_matrix((n_users, n_users), dtype=np.float64)

        # 至少两个用户的帖子桶才会产生用户对
        buckets = np.flatnonzero(bucket_sizes(matrix) >= 2)
        if base_index is not None:
            base_posts = matrix.tocsr()[[base_index], :].indices
            buckets = np.intersect1d(buckets, base_posts)
        if len(buckets) == 0:
            return empty

        batch_size = self.batch_size or batch_size_for(len(buckets))
        logger.debug(f"Accumulating dot products over {len(buckets)} post buckets (batch size {batch_size})")

        def _accumulate(partition):
            sub = matrix[:, partition]
            if base_index is None:
                return triu(sub @ sub.T, k=1, format='csr')

            dots = (sub @ sub[[base_index], :].T).tocoo()
            keep = dots.row != base_index
            others = dots.row[keep]
            rows = np.minimum(others, base_index)
            cols = np.maximum(others, base_index)
            return coo_matrix((dots.data[keep], (rows, cols)), shape=(n_users, n_users)).tocsr()

        return map_reduce(
            _accumulate,
            buckets,
            reducer=lambda acc, part: acc + part,
            initial=empty,
            batch_size=batch_size,
            parallel=self.parallel,
        )

    def compute_similarities(self,
                             scores: Sequence,
                             vectors: Mapping[Hashable, Mapping],
                             norms: Mapping[Hashable, float],
                             base_user_id: Optional[Hashable] = None) -> List[UserSimilarity]:
        """
        计算用户对之间的余弦相似度

        Args:
            scores: UserPostScore 列表
            vectors: 同一快照构建的用户向量
            norms: 同一快照构建的用户范数
            base_user_id: 基准用户ID，指定时只计算该用户与共享帖子的其他用户

        Returns:
            UserSimilarity 列表，user_id1 < user_id2，按 (user_id1, user_id2) 排序

        Raises:
            InvariantViolationError: 被引用的用户在 vectors/norms 中不存在
        """
        if base_user_id is not None and base_user_id not in vectors:
            return []

        matrix, user_id_to_index, _ = build_user_post_matrix(scores)
        if base_user_id is not None and base_user_id not in user_id_to_index:
            return []
        user_ids = list(user_id_to_index)

        base_index = None if base_user_id is None else user_id_to_index[base_user_id]
        dots = self.accumulate_pair_dots(matrix, base_index=base_index).tocoo()
        if dots.nnz == 0:
            return []

        referenced = np.union1d(dots.row, dots.col)
        missing = [user_ids[i] for i in referenced if user_ids[i] not in vectors or user_ids[i] not in norms]
        if missing:
            raise InvariantViolationError(
                f"Users {missing[:10]} referenced by similarity pairs have no vector in this snapshot"
            )

        norm_array = np.zeros(len(user_ids), dtype=np.float64)
        norm_array[referenced] = [norms[user_ids[i]] for i in referenced]
        similarity = cosine_from_dot(dots.data, norm_array[dots.row], norm_array[dots.col])
        validate_similarity_values(similarity)

        order = np.lexsort((dots.col, dots.row))
        result = [
            UserSimilarity(user_ids[dots.row[k]], user_ids[dots.col[k]], float(similarity[k]))
            for k in order
        ]
        logger.info(f"Computed {len(result)} user similarities"
                    + ("" if base_user_id is None else f" for user {base_user_id}"))
        return result
