"""
并行批处理工具模块

把任务列表切分成近似等长的批次，交给 multitasking 线程池并发执行，
每个批次只写自己的结果槽位，全部完成后按批次顺序合并（partition + reduce）
"""

from functools import reduce
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Sequence

import multitasking
from tqdm import tqdm

from .config import BATCH_FACTOR
from .exceptions import BatchExecutionError, PostRecommenderError
from .logger import logger

POOL_NAME = 'post_recommender'
max_threads = multitasking.config['CPU_CORES']
# 计算任务共享只读数据，使用 thread 引擎，避免在进程间复制快照
multitasking.createPool(POOL_NAME, threads=max_threads, engine='thread')

_MISSING = object()


def _activate_pool() -> None:
    # multitasking 只有一个全局活动线程池，其他调用方 createPool 后需要切换回来
    if POOL_NAME not in multitasking.config['POOLS']:
        multitasking.createPool(POOL_NAME, threads=max_threads, engine='thread')
    multitasking.config['POOL_NAME'] = POOL_NAME


def _release_tasks(handles: List[Any]) -> None:
    """把已经 join 的任务从 multitasking 的全局任务列表中移除"""
    tasks = multitasking.config['TASKS']
    for handle in handles:
        if handle is None:
            continue
        try:
            tasks.remove(handle)
        except ValueError:
            pass


def _raise_batch_error(worker_id: int, total: int, error: BaseException):
    # 已经分类的业务异常原样抛出，其他异常统一包装成批次失败
    if isinstance(error, PostRecommenderError):
        raise error
    raise BatchExecutionError(f"Batch {worker_id} of {total} failed: {error}") from error


def available_parallelism() -> int:
    """返回工作线程池的并行度"""
    return max(1, int(max_threads))


def batch_size_for(item_count: int, parallelism: Optional[int] = None) -> int:
    """
    计算批次大小: max(1, 任务数 / (并行度 * BATCH_FACTOR))

    Args:
        item_count: 任务总数
        parallelism: 并行度，默认使用线程池大小

    Returns:
        每个批次包含的任务数
    """
    if parallelism is None:
        parallelism = available_parallelism()
    return max(1, item_count // (max(1, parallelism) * BATCH_FACTOR))


def chunked(items: Sequence, size: int) -> List[Sequence]:
    """按固定大小切分序列，最后一个批次可以更短"""
    if size < 1:
        raise ValueError(f"Batch size must be positive, got {size}")
    return [items[i:i + size] for i in range(0, len(items), size)]


@multitasking.task
def _run_partition(func, partition, results, errors, worker_id):
    # 每个任务只写自己的槽位，不需要加锁
    try:
        results[worker_id] = func(partition)
    except Exception as e:
        errors[worker_id] = e


def map_partitions(func: Callable[[Sequence], Any],
                   items: Sequence,
                   batch_size: Optional[int] = None,
                   parallel: bool = True,
                   progress: Optional[str] = None) -> List[Any]:
    """
    把 items 切分成批次并发执行 func，返回按批次顺序排列的部分结果

    Args:
        func: 处理单个批次的函数，只能读取共享数据，返回该批次的私有结果
        items: 任务列表
        batch_size: 批次大小，默认由 batch_size_for 计算
        parallel: False 时在当前线程顺序执行（用于嵌套在其他并行任务中的场景）
        progress: 进度条描述，None表示不显示进度条

    Returns:
        部分结果列表，顺序与批次顺序一致

    Raises:
        BatchExecutionError: 任一批次失败或未被线程池执行
    """
    items = list(items) if not isinstance(items, Sequence) else items
    if len(items) == 0:
        return []
    if batch_size is None:
        batch_size = batch_size_for(len(items))
    partitions = chunked(items, batch_size)

    if not parallel:
        results = []
        for worker_id, partition in enumerate(tqdm(partitions, desc=progress, disable=progress is None)):
            try:
                results.append(func(partition))
            except Exception as e:
                _raise_batch_error(worker_id, len(partitions), e)
        return results

    results: List[Any] = [_MISSING] * len(partitions)
    errors: Dict[int, BaseException] = {}
    handles = []
    _activate_pool()
    try:
        for worker_id, partition in enumerate(partitions):
            handles.append(_run_partition(func, partition, results, errors, worker_id))

        # join 点：只等待本次调用提交的任务
        for handle in tqdm(handles, desc=progress, disable=progress is None):
            if handle is not None and hasattr(handle, 'join'):
                handle.join()
    finally:
        _release_tasks(handles)

    if errors:
        worker_id = min(errors)
        _raise_batch_error(worker_id, len(partitions), errors[worker_id])

    missing = [i for i, r in enumerate(results) if r is _MISSING]
    if missing:
        raise BatchExecutionError(f"Worker pool did not execute batches {missing}")

    logger.debug(f"Joined {len(partitions)} batches (batch size {batch_size}, {len(items)} items)")
    return results


def map_reduce(func: Callable[[Sequence], Any],
               items: Sequence,
               reducer: Callable[[Any, Any], Any],
               initial: Any,
               batch_size: Optional[int] = None,
               parallel: bool = True) -> Any:
    """
    并发执行 map_partitions，再按批次顺序用 reducer 合并部分结果

    合并顺序固定，浮点数累加结果可以复现
    """
    partials = map_partitions(func, items, batch_size=batch_size, parallel=parallel)
    return reduce(reducer, partials, initial)


def merge_score_maps(left: Dict[Hashable, float], right: Dict[Hashable, float]) -> Dict[Hashable, float]:
    """按 key 累加两个分数字典（会原地修改并返回 left）"""
    for key, value in right.items():
        left[key] = left.get(key, 0.0) + value
    return left


def flatten(partials: Iterable[List]) -> List:
    """拼接按批次返回的列表结果"""
    merged = []
    for part in partials:
        merged.extend(part)
    return merged
