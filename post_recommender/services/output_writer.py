"""
推荐结果存储服务模块
"""

import os
import threading
from typing import Hashable, List

import pandas as pd

from ..models import Recommendation
from ..utils.exceptions import OutputError
from ..utils.logger import logger

RECOMMENDATION_COLUMNS = ['user_id', 'post_id', 'score', 'updated_at']


class RecommendationStore:
    """
    推荐结果存储

    以 (user_id, post_id) 为唯一键保存推荐结果，重复写入时更新分数和时间
    """

    def __init__(self):
        self._frame = pd.DataFrame(columns=RECOMMENDATION_COLUMNS)
        self._lock = threading.Lock()

    def upsert(self, recommendations: List[Recommendation]) -> int:
        """
        插入或更新推荐结果

        Args:
            recommendations: 推荐结果列表

        Returns:
            写入的记录数

        Raises:
            OutputError: 写入失败
        """
        if not recommendations:
            return 0
        try:
            incoming = pd.DataFrame(
                [(rec.user_id, rec.post_id, rec.score) for rec in recommendations],
                columns=['user_id', 'post_id', 'score'],
            )
            incoming['updated_at'] = pd.Timestamp.now(tz='UTC')
            # 同一批次中重复的键只保留最后一条
            incoming = incoming.drop_duplicates(subset=['user_id', 'post_id'], keep='last')

            with self._lock:
                if self._frame.empty:
                    merged = incoming
                else:
                    merged = pd.concat([self._frame, incoming], ignore_index=True)
                    merged = merged.drop_duplicates(subset=['user_id', 'post_id'], keep='last')
                self._frame = merged.reset_index(drop=True)

            logger.info(f"Upserted {len(incoming)} recommendations")
            return len(incoming)
        except Exception as e:
            raise OutputError(f"Error upserting recommendations: {str(e)}") from e

    def get_user_recommendations(self, user_id: Hashable) -> List[Recommendation]:
        """返回用户已保存的推荐结果，按分数降序"""
        with self._lock:
            rows = self._frame[self._frame['user_id'] == user_id]
        rows = rows.sort_values(['score', 'post_id'], ascending=[False, True])
        return [Recommendation(row.user_id, row.post_id, row.score) for row in rows.itertuples(index=False)]

    def to_frame(self) -> pd.DataFrame:
        with self._lock:
            return self._frame.copy()

    def restore(self, frame: pd.DataFrame) -> None:
        """用 to_frame 取得的快照覆盖当前内容，用于撤销失败任务的写入"""
        with self._lock:
            self._frame = frame.copy()
        logger.info(f"Recommendation store restored to {len(frame)} rows")

    def write_csv(self, output_path: str) -> None:
        """
        将推荐结果写入CSV文件

        Raises:
            OutputError: 输出错误
        """
        try:
            df = self.to_frame().sort_values(['user_id', 'score'], ascending=[True, False])

            # 创建输出目录（如果不存在）
            output_dir = os.path.dirname(output_path)
            if output_dir:
                os.makedirs(output_dir, exist_ok=True)

            df.to_csv(output_path, index=False)
            logger.info(f"Recommendations written to {output_path}: {len(df)} rows, {df['user_id'].nunique()} users")
        except Exception as e:
            raise OutputError(f"Error writing recommendations file: {str(e)}") from e

    def __len__(self) -> int:
        with self._lock:
            return len(self._frame)
