"""
相似度计算工具模块
"""

import math
from typing import Mapping, Hashable

import numpy as np


def vector_norm(vector: Mapping[Hashable, float]) -> float:
    """
    计算稀疏向量的L2范数

    Args:
        vector: {帖子ID: 权重}

    Returns:
        sqrt(Σ weight²)，空向量返回0.0
    """
    return math.sqrt(sum(weight * weight for weight in vector.values()))


def cosine_from_dot(dot: np.ndarray, norms_a: np.ndarray, norms_b: np.ndarray) -> np.ndarray:
    """
    由点积和范数计算余弦相似度

    任一范数为0时相似度为0.0，不会产生NaN或Inf

    Args:
        dot: 点积数组
        norms_a: 第一个用户的范数数组
        norms_b: 第二个用户的范数数组

    Returns:
        余弦相似度数组（float64）
    """
    dot = np.asarray(dot, dtype=np.float64)
    denom = np.asarray(norms_a, dtype=np.float64) * np.asarray(norms_b, dtype=np.float64)
    similarity = np.zeros_like(dot)
    np.divide(dot, denom, out=similarity, where=denom > 0)
    return similarity


def validate_similarity_values(values: np.ndarray, tolerance: float = 1e-9) -> None:
    """
    验证相似度取值：有限且在[-1, 1]内（允许微小的浮点误差）

    Raises:
        ValueError: 如果取值无效
    """
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0:
        return
    if not np.isfinite(values).all():
        raise ValueError("Similarity values must be finite")
    min_val = values.min()
    max_val = values.max()
    if max_val > 1.0 + tolerance or min_val < -1.0 - tolerance:
        raise ValueError(f"Similarity values must be in [-1, 1], got [{min_val}, {max_val}]")
