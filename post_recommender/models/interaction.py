"""
用户交互记录模型
"""

from typing import Hashable, Optional


class InteractionRecord:
    """用户对帖子的交互记录（浏览次数和收藏状态）"""

    def __init__(self,
                 user_id: Hashable,
                 post_id: Hashable,
                 view_count: int = 0,
                 favorite: bool = False,
                 timestamp: Optional[str] = None):
        """
        初始化交互记录

        Args:
            user_id: 用户ID
            post_id: 帖子ID
            view_count: 浏览次数
            favorite: 是否收藏
            timestamp: 最后一次交互时间
        """
        self.user_id = user_id
        self.post_id = post_id
        self.view_count = view_count
        self.favorite = favorite
        self.timestamp = timestamp

    def __repr__(self) -> str:
        return (f"InteractionRecord(user_id={self.user_id}, post_id={self.post_id}, "
                f"view_count={self.view_count}, favorite={self.favorite})")
