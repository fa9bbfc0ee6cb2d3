"""
配置模块：推荐参数、权重公式常量和路径配置

所有参数都可以通过 POST_REC_* 环境变量覆盖
"""

import os
from typing import Optional


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    return int(value) if value else default


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.environ.get(name)
    return float(value) if value else default


# 数据路径配置
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
DATA_DIR = os.environ.get('POST_REC_DATA_DIR', os.path.join(ROOT_DIR, 'data'))
INTERACTIONS_PATH = os.path.join(DATA_DIR, 'user_action_records.csv')
OUTPUT_PATH = os.path.join(DATA_DIR, 'recommend_posts.csv')

# 推荐系统配置
TOP_N_SIMILARITY = _env_int('POST_REC_TOP_N_SIMILARITY', 100)  # 参与打分的相似用户数量
TOP_N_POSTS = _env_int('POST_REC_TOP_N_POSTS', 500)  # 每个用户推荐的帖子数量

# 交互权重：min(浏览次数, 5) + (收藏 ? 10 : 0)
VIEW_COUNT_CAP = _env_int('POST_REC_VIEW_COUNT_CAP', 5)
FAVORITE_BONUS = _env_float('POST_REC_FAVORITE_BONUS', 10.0)

# 批次大小 = max(1, 任务数 / (CPU核数 * BATCH_FACTOR))
BATCH_FACTOR = _env_int('POST_REC_BATCH_FACTOR', 4)

# 推荐结果缓存过期时间（秒）
CACHE_TTL_SECONDS = _env_int('POST_REC_CACHE_TTL_SECONDS', 600)

# 拉取交互快照的超时时间（秒），None表示不限制
FETCH_TIMEOUT_SECONDS = _env_float('POST_REC_FETCH_TIMEOUT_SECONDS', None)
