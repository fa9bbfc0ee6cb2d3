"""
数据验证工具模块
"""

import math
from typing import Hashable, Iterable, List

import pandas as pd

from .exceptions import DataValidationError


def validate_id(value: Hashable, name: str = 'id') -> None:
    """
    验证用户ID或帖子ID

    Args:
        value: 待验证的ID
        name: 字段名称，用于错误信息

    Raises:
        DataValidationError: 如果ID为空
    """
    if value is None:
        raise DataValidationError(f"Invalid {name}: {value}")
    if isinstance(value, float) and math.isnan(value):
        raise DataValidationError(f"Invalid {name}: {value}")
    if isinstance(value, str) and not value.strip():
        raise DataValidationError(f"Invalid {name}: {value!r}")


def validate_weight(weight: float) -> None:
    """
    验证交互权重：必须是有限的非负数

    Raises:
        DataValidationError: 如果权重无效
    """
    try:
        value = float(weight)
    except (TypeError, ValueError):
        raise DataValidationError(f"Invalid weight: {weight!r}")
    if math.isnan(value) or math.isinf(value) or value < 0:
        raise DataValidationError(f"Weight must be a finite non-negative number, got {weight}")


def validate_dataframe_columns(df: pd.DataFrame, required_columns: List[str]) -> None:
    """
    验证DataFrame是否包含必需的列

    Args:
        df: 要验证的DataFrame
        required_columns: 必需的列名列表

    Raises:
        DataValidationError: 如果缺少必需的列
    """
    missing_columns = set(required_columns) - set(df.columns)
    if missing_columns:
        raise DataValidationError(f"Missing required columns: {sorted(missing_columns)}")


def validate_user_post_scores(scores: Iterable) -> None:
    """
    验证聚合后的交互权重列表：ID有效、权重非负、(用户, 帖子) 不重复

    Raises:
        DataValidationError: 如果列表无效
    """
    seen = set()
    for score in scores:
        validate_id(score.user_id, 'user_id')
        validate_id(score.post_id, 'post_id')
        validate_weight(score.weight)
        key = (score.user_id, score.post_id)
        if key in seen:
            raise DataValidationError(f"Duplicate (user_id, post_id) pair: {key}")
        seen.add(key)


def validate_recommendation_list(recommendations: List, top_n: int) -> None:
    """
    验证单个用户的推荐列表

    Args:
        recommendations: 推荐结果列表
        top_n: 允许的最大推荐数量

    Raises:
        DataValidationError: 如果推荐列表无效
    """
    if not isinstance(recommendations, list):
        raise DataValidationError(f"Recommendation list must be a list, got {type(recommendations)}")
    if len(recommendations) > top_n:
        raise DataValidationError(f"Recommendation list exceeds {top_n} posts, got {len(recommendations)}")
    keys = [(rec.user_id, rec.post_id) for rec in recommendations]
    if len(set(keys)) != len(keys):
        raise DataValidationError("Recommendation list contains duplicate (user_id, post_id) pairs")
    for rec in recommendations:
        validate_id(rec.post_id, 'post_id')
        validate_weight(rec.score)
