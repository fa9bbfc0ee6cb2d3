"""
数据模型模块
"""

from .interaction import InteractionRecord
from .user_post_score import UserPostScore
from .user_similarity import UserSimilarity
from .recommendation import Recommendation
from .user_data import UserData

__all__ = ['InteractionRecord', 'UserPostScore', 'UserSimilarity', 'Recommendation', 'UserData']
