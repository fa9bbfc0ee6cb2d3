"""
日志配置模块
"""

import logging
import os
import sys
from pathlib import Path

# 日志格式
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

LOG_DIR = Path(os.environ.get('POST_REC_LOG_DIR', Path(__file__).parent.parent.parent / 'logs'))


def setup_logger(name: str = 'post_recommender', level: int = None) -> logging.Logger:
    """
    设置并返回logger实例

    Args:
        name: logger名称
        level: 控制台日志级别，默认读取环境变量LOG_LEVEL，未设置时为INFO

    Returns:
        配置好的logger实例
    """
    if level is None:
        level = logging.getLevelName(os.environ.get('LOG_LEVEL', 'INFO').upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)

    # 避免重复添加handler
    if logger.handlers:
        return logger

    # 控制台handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(console_handler)

    # 文件handler
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(LOG_DIR / 'post_recommender.log', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(file_handler)

    return logger


# 默认logger实例
logger = setup_logger()
