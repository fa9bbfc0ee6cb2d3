"""
交互数据加载服务模块
"""

import os
from typing import List

import pandas as pd

from ..algorithms.weight_aggregator import INTERACTION_COLUMNS, aggregate_weights, parse_favorite
from ..models import UserPostScore
from ..utils.config import INTERACTIONS_PATH
from ..utils.exceptions import DataLoadError, DataValidationError
from ..utils.logger import logger
from ..utils.validation import validate_dataframe_columns


class InteractionLoader:
    """
    用户交互记录加载器

    从CSV读取原始交互记录（每行一个用户对一个帖子的浏览次数和收藏状态），
    每次调用 fetch_all_weights 都会重新读取，得到一份完整的快照
    """

    def __init__(self, file_path: str = INTERACTIONS_PATH):
        """
        Args:
            file_path: 交互记录CSV文件路径
        """
        self.file_path = file_path

    def load_interactions(self) -> pd.DataFrame:
        """
        加载交互记录

        Returns:
            包含 user_id, post_id, view_count, favorite 列的DataFrame

        Raises:
            DataLoadError: 文件不存在或读取失败
            DataValidationError: 缺少必需的列
        """
        if not os.path.exists(self.file_path):
            raise DataLoadError(f"Interaction data file not found: {self.file_path}")

        try:
            logger.info(f"Loading interaction records from {self.file_path}")
            df = pd.read_csv(self.file_path)
        except Exception as e:
            raise DataLoadError(f"Error reading interaction records: {str(e)}") from e

        validate_dataframe_columns(df, INTERACTION_COLUMNS)

        # 处理缺失值
        df['view_count'] = pd.to_numeric(df['view_count'], errors='coerce').fillna(0).astype('int64')
        df['favorite'] = df['favorite'].map(parse_favorite).astype(bool)
        if 'timestamp' in df.columns:
            df['timestamp'] = pd.to_datetime(df['timestamp'], errors='coerce', utc=True)

        logger.info(f"Loaded {len(df)} interaction records for {df['user_id'].nunique()} users")
        return df

    def fetch_all_weights(self) -> List[UserPostScore]:
        """
        读取交互记录并聚合成 UserPostScore 快照

        Raises:
            DataLoadError: 读取或聚合失败
        """
        df = self.load_interactions()
        try:
            return aggregate_weights(df)
        except DataValidationError:
            raise
        except Exception as e:
            raise DataLoadError(f"Error aggregating interaction weights: {str(e)}") from e
