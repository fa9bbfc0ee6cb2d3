"""
推荐任务编排服务

一次任务分成两个执行阶段：
1. 拉取阶段（I/O）：在独立的单线程执行器中获取交互权重快照
2. 计算阶段（CPU）：构建用户向量、计算相似度、生成推荐，使用 multitasking 工作线程池

只有整个流程成功完成后才写入存储和缓存
"""

import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Callable, Dict, Hashable, List, Optional

from ..algorithms.recommendation_generator import RecommendationGenerator
from ..algorithms.similarity_engine import SimilarityEngine
from ..algorithms.vector_builder import build_user_data
from ..models import Recommendation, UserPostScore
from ..utils.config import CACHE_TTL_SECONDS, FETCH_TIMEOUT_SECONDS, TOP_N_POSTS, TOP_N_SIMILARITY
from ..utils.exceptions import (CacheError, DataLoadError, PostRecommenderError, RecommendationError,
                                RunCancelledError)
from ..utils.logger import logger
from ..utils.timing import timed_stage
from ..utils.validation import validate_recommendation_list, validate_user_post_scores
from .cache import RecommendationCache
from .output_writer import RecommendationStore


class RecommendationPipeline:
    """帖子推荐任务入口"""

    def __init__(self,
                 fetch_all_weights: Callable[[], List[UserPostScore]],
                 cache: Optional[RecommendationCache] = None,
                 store: Optional[RecommendationStore] = None,
                 top_n_similarity: int = TOP_N_SIMILARITY,
                 top_n_posts: int = TOP_N_POSTS,
                 cache_ttl: float = CACHE_TTL_SECONDS,
                 fetch_timeout: Optional[float] = FETCH_TIMEOUT_SECONDS,
                 parallel: bool = True,
                 show_progress: bool = False):
        """
        Args:
            fetch_all_weights: 返回完整 UserPostScore 快照的函数（外部聚合查询）
            cache: 推荐结果缓存（可选）
            store: 推荐结果存储（可选）
            top_n_similarity: 参与打分的相似用户数量
            top_n_posts: 每个用户的推荐数量
            cache_ttl: 缓存过期时间（秒）
            fetch_timeout: 拉取快照的超时时间（秒），None表示不限制
            parallel: 计算阶段是否使用工作线程池
            show_progress: 全量推荐时是否显示 tqdm 进度条

        Raises:
            CacheError: cache_ttl 不是正数
        """
        if cache_ttl <= 0:
            raise CacheError(f"Cache TTL must be positive, got {cache_ttl}")
        self.fetch_all_weights = fetch_all_weights
        self.cache = cache
        self.store = store
        self.cache_ttl = cache_ttl
        self.fetch_timeout = fetch_timeout
        self.similarity_engine = SimilarityEngine(parallel=parallel)
        self.generator = RecommendationGenerator(
            top_n_similarity=top_n_similarity,
            top_n_posts=top_n_posts,
            parallel=parallel,
            progress_desc='Recommending' if show_progress else None,
        )
        self.last_run_stats: Dict[str, float] = {}

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event], stage: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise RunCancelledError(f"Recommendation run cancelled after {stage}")

    def _fetch_stage(self, stats: Dict[str, float]) -> List[UserPostScore]:
        """在独立的I/O执行器中拉取交互权重快照"""
        with timed_stage('fetch_all_weights', stats):
            io_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='post-rec-io')
            try:
                future = io_executor.submit(self.fetch_all_weights)
                scores = future.result(timeout=self.fetch_timeout)
            except FutureTimeoutError as e:
                future.cancel()
                raise DataLoadError(f"Fetching interaction weights timed out after {self.fetch_timeout}s") from e
            except PostRecommenderError:
                raise
            except Exception as e:
                raise DataLoadError(f"Error fetching interaction weights: {str(e)}") from e
            finally:
                # 超时后不等待仍在运行的查询
                io_executor.shutdown(wait=False)

        scores = list(scores)
        validate_user_post_scores(scores)
        stats['scores'] = len(scores)
        return scores

    def _persist(self, recommendations: List[Recommendation], user_ids: List[Hashable]) -> None:
        """写入存储和缓存，任一方失败时存储恢复到写入前的内容"""
        by_user: Dict[Hashable, List[Hashable]] = {user_id: [] for user_id in user_ids}
        for rec in recommendations:
            by_user.setdefault(rec.user_id, []).append(rec.post_id)

        snapshot = None
        if self.store is not None:
            snapshot = self.store.to_frame()
            self.store.upsert(recommendations)
        if self.cache is None:
            return
        try:
            self.cache.put_many(by_user, ttl=self.cache_ttl)
        except Exception:
            if snapshot is not None:
                logger.error("Cache write failed, rolling back recommendation store")
                self.store.restore(snapshot)
            raise

    def run_for_user(self, user_id: Hashable, cancel_event: Optional[threading.Event] = None) -> List[Recommendation]:
        """
        为单个用户计算推荐

        Args:
            user_id: 目标用户ID
            cancel_event: 取消信号，在拉取完成后和每个并行阶段结束后检查

        Returns:
            Recommendation 列表，用户没有交互记录时返回空列表

        Raises:
            PostRecommenderError: 任一阶段失败，本次任务不会写入任何结果
        """
        stats: Dict[str, float] = {}
        logger.info(f"Recommendation run started for user {user_id}")
        try:
            scores = self._fetch_stage(stats)
            self._check_cancelled(cancel_event, 'fetch')

            with timed_stage('build_user_data', stats):
                user_data = build_user_data(scores)
            stats['users'] = len(user_data)

            if user_id not in user_data.vectors:
                logger.info(f"User {user_id} has no interactions, skipping")
                stats['skipped_users'] = 1
                self.last_run_stats = stats
                return []

            with timed_stage('compute_similarities', stats):
                similarities = self.similarity_engine.compute_similarities(
                    scores, user_data.vectors, user_data.norms, base_user_id=user_id
                )
            stats['similarity_pairs'] = len(similarities)
            self._check_cancelled(cancel_event, 'similarity computation')

            with timed_stage('recommend', stats):
                recommendations = self.generator.recommend(
                    similarities, user_data.vectors, user_data.posts, user_id
                )
            validate_recommendation_list(recommendations, self.generator.top_n_posts)
            stats['recommendations'] = len(recommendations)
            self._check_cancelled(cancel_event, 'recommendation scoring')

            self._persist(recommendations, [user_id])
        except PostRecommenderError:
            raise
        except Exception as e:
            raise RecommendationError(f"Error generating recommendations for user {user_id}: {str(e)}") from e

        self.last_run_stats = stats
        logger.info(f"Recommendation run finished for user {user_id}: {len(recommendations)} posts")
        return recommendations

    def run_for_all_users(self, cancel_event: Optional[threading.Event] = None) -> List[Recommendation]:
        """
        为所有用户计算推荐（定时批处理入口）

        没有任何交互的用户不会出现在快照里；权重全为0的用户被跳过，计入 skipped_users

        Raises:
            PostRecommenderError: 任一阶段失败，本次任务不会写入任何结果
        """
        stats: Dict[str, float] = {}
        logger.info("Recommendation run started for all users")
        try:
            scores = self._fetch_stage(stats)
            self._check_cancelled(cancel_event, 'fetch')

            with timed_stage('build_user_data', stats):
                user_data = build_user_data(scores)
            stats['users'] = len(user_data)

            active_users = [uid for uid in user_data.user_ids if user_data.norms[uid] > 0]
            stats['skipped_users'] = len(user_data) - len(active_users)
            if stats['skipped_users']:
                logger.info(f"Skipping {stats['skipped_users']} users without positive interactions")

            with timed_stage('compute_similarities', stats):
                similarities = self.similarity_engine.compute_similarities(
                    scores, user_data.vectors, user_data.norms
                )
            stats['similarity_pairs'] = len(similarities)
            self._check_cancelled(cancel_event, 'similarity computation')

            with timed_stage('recommend_all', stats):
                recommendations = self.generator.recommend_all(similarities, user_data, user_ids=active_users)
            stats['recommendations'] = len(recommendations)
            self._check_cancelled(cancel_event, 'recommendation scoring')

            self._persist(recommendations, active_users)
        except PostRecommenderError:
            raise
        except Exception as e:
            raise RecommendationError(f"Error generating recommendations for all users: {str(e)}") from e

        self.last_run_stats = stats
        logger.info(f"Recommendation run finished: {len(recommendations)} recommendations "
                    f"for {len(active_users)} users")
        return recommendations

    def get_recommended_posts(self, user_id: Hashable) -> List[Hashable]:
        """
        返回用户的推荐帖子ID列表，优先读取缓存，未命中时重新计算

        Raises:
            PostRecommenderError: 计算失败时抛出，不返回过期或部分结果
        """
        if self.cache is not None:
            cached = self.cache.get(user_id)
            if cached is not None:
                logger.debug(f"Cache hit for user {user_id}")
                return cached
        return [rec.post_id for rec in self.run_for_user(user_id)]
