"""
异常类定义
"""


class PostRecommenderError(Exception):
    """帖子推荐系统基础异常类"""
    pass


class DataLoadError(PostRecommenderError):
    """交互数据加载错误（包括上游聚合查询失败）"""
    pass


class DataValidationError(PostRecommenderError):
    """数据验证错误"""
    pass


class InvariantViolationError(PostRecommenderError):
    """
    不变量被破坏

    同一快照构建的向量映射中找不到被引用的用户ID等情况，属于程序错误，不可恢复
    """
    pass


class BatchExecutionError(PostRecommenderError):
    """并行批次执行失败"""
    pass


class RunCancelledError(PostRecommenderError):
    """推荐任务被取消"""
    pass


class RecommendationError(PostRecommenderError):
    """推荐生成错误"""
    pass


class CacheError(PostRecommenderError):
    """推荐结果缓存错误"""
    pass


class OutputError(PostRecommenderError):
    """结果输出错误"""
    pass
