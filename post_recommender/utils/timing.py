"""
执行时间统计工具
"""

import time
from contextlib import contextmanager
from typing import Dict, Optional

from .logger import logger


@contextmanager
def timed_stage(name: str, stats: Optional[Dict[str, float]] = None):
    """
    记录代码块的执行时间（毫秒）

    Args:
        name: 阶段名称
        stats: 可选的统计字典，耗时会写入 stats[f'{name}_ms']
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        if stats is not None:
            stats[f'{name}_ms'] = elapsed_ms
        logger.info(f"{name} took {elapsed_ms:.1f} ms")
