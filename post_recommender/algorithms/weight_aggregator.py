"""
交互权重聚合

把原始交互记录（浏览次数、收藏）转换成每个 (用户, 帖子) 一条的 UserPostScore
"""

from typing import Iterable, List, Union

import numpy as np
import pandas as pd

from ..models import InteractionRecord, UserPostScore
from ..utils.config import FAVORITE_BONUS, VIEW_COUNT_CAP
from ..utils.exceptions import DataValidationError
from ..utils.logger import logger
from ..utils.validation import validate_dataframe_columns

INTERACTION_COLUMNS = ['user_id', 'post_id', 'view_count', 'favorite']

_TRUE_VALUES = {'true', '1', 'yes', 'y', 't'}


def parse_favorite(value) -> bool:
    """
    解析收藏状态，兼容CSV中的字符串（'true'/'false'/'1'/'0'）和缺失值

    Returns:
        是否收藏，缺失值视为未收藏
    """
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    if pd.isna(value):
        return False
    return bool(value)


def compute_weight(view_count: int, favorite: bool) -> float:
    """
    单条交互记录的权重: min(浏览次数, 5) + (收藏 ? 10 : 0)

    Args:
        view_count: 浏览次数
        favorite: 是否收藏

    Returns:
        浮点权重

    Raises:
        DataValidationError: 浏览次数为负
    """
    if view_count < 0:
        raise DataValidationError(f"view_count must be non-negative, got {view_count}")
    return float(min(view_count, VIEW_COUNT_CAP)) + (FAVORITE_BONUS if favorite else 0.0)


def _records_to_frame(records: Iterable[InteractionRecord]) -> pd.DataFrame:
    return pd.DataFrame(
        [(r.user_id, r.post_id, r.view_count, r.favorite) for r in records],
        columns=INTERACTION_COLUMNS,
    )


def aggregate_weights(records: Union[pd.DataFrame, Iterable[InteractionRecord]]) -> List[UserPostScore]:
    """
    聚合交互记录，得到每个 (用户, 帖子) 的权重之和

    Args:
        records: 包含 user_id, post_id, view_count, favorite 列的DataFrame，
                 或 InteractionRecord 列表

    Returns:
        UserPostScore 列表，按 (user_id, post_id) 排序

    Raises:
        DataValidationError: 缺少列或浏览次数为负
    """
    if isinstance(records, pd.DataFrame):
        df = records
    else:
        df = _records_to_frame(records)

    validate_dataframe_columns(df, INTERACTION_COLUMNS)
    if df.empty:
        return []

    df = df[INTERACTION_COLUMNS].copy()
    if df['user_id'].isna().any() or df['post_id'].isna().any():
        raise DataValidationError("Interaction records contain missing user_id or post_id")

    view_count = pd.to_numeric(df['view_count'], errors='coerce').fillna(0)
    if (view_count < 0).any():
        raise DataValidationError("view_count must be non-negative")
    favorite = df['favorite'].map(parse_favorite).astype(bool)

    # 整数计数只在这里转换一次，之后全部使用浮点权重
    df['weight'] = (np.minimum(view_count, VIEW_COUNT_CAP).astype(np.float64)
                    + np.where(favorite, FAVORITE_BONUS, 0.0))

    agg = df.groupby(['user_id', 'post_id'], as_index=False, sort=True)['weight'].sum()
    logger.info(f"Aggregated {len(df)} interaction records into {len(agg)} user-post weights")

    return [UserPostScore(user_id, post_id, weight)
            for user_id, post_id, weight in agg.itertuples(index=False, name=None)]
