"""
用户-帖子权重矩阵构建工具
稀疏矩阵的每一列就是一个帖子的倒排桶（与该帖子有正权重交互的用户）
"""

from typing import Dict, Hashable, List, Sequence, Tuple

import numpy as np
from scipy.sparse import csc_matrix

from .logger import logger


def build_user_post_matrix(
    scores: Sequence,
    user_ids: List[Hashable] = None
) -> Tuple[csc_matrix, Dict[Hashable, int], List[Hashable]]:
    """
    构建用户-帖子权重矩阵（倒排索引）

    只保留 weight > 0 的交互，用户行按用户ID升序排列，
    因此行号顺序与用户ID顺序一致

    Args:
        scores: UserPostScore 列表
        user_ids: 用户ID列表（可选，如果为None则从scores中提取）

    Returns:
        (user_post_matrix, user_id_to_index, post_ids)
        - user_post_matrix: 用户×帖子稀疏矩阵（CSC格式，按列切片即按帖子取桶）
        - user_id_to_index: 用户ID到行号的映射
        - post_ids: 列号对应的帖子ID
    """
    if user_ids is None:
        user_ids = sorted({score.user_id for score in scores})
    user_id_to_index = {uid: idx for idx, uid in enumerate(user_ids)}

    post_ids = sorted({score.post_id for score in scores if score.weight > 0})
    post_id_to_index = {pid: idx for idx, pid in enumerate(post_ids)}

    rows = []
    cols = []
    data = []
    for score in scores:
        if score.weight <= 0:
            continue
        rows.append(user_id_to_index[score.user_id])
        cols.append(post_id_to_index[score.post_id])
        data.append(score.weight)

    matrix = csc_matrix(
        (np.asarray(data, dtype=np.float64), (np.asarray(rows, dtype=np.int64), np.asarray(cols, dtype=np.int64))),
        shape=(len(user_ids), len(post_ids)),
        dtype=np.float64,
    )
    # 重复的 (用户, 帖子) 在转换时会被累加
    matrix.sum_duplicates()
    logger.debug(f"User-post matrix created: shape {matrix.shape}, non-zero elements: {matrix.nnz}")

    return matrix, user_id_to_index, post_ids


def bucket_sizes(matrix: csc_matrix) -> np.ndarray:
    """每个帖子桶中的用户数量"""
    return np.diff(matrix.indptr)
