"""
帖子推荐系统主入口
"""

import sys
import time
from pathlib import Path
from typing import List, Optional

# 添加项目根目录到路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from post_recommender.services.cache import RecommendationCache
from post_recommender.services.data_loader import InteractionLoader
from post_recommender.services.output_writer import RecommendationStore
from post_recommender.services.pipeline import RecommendationPipeline
from post_recommender.models import Recommendation
from post_recommender.utils.config import INTERACTIONS_PATH, OUTPUT_PATH, TOP_N_POSTS, TOP_N_SIMILARITY
from post_recommender.utils.exceptions import PostRecommenderError
from post_recommender.utils.logger import logger


def run_post_recommender(
    interactions_path: str = INTERACTIONS_PATH,
    output_path: Optional[str] = OUTPUT_PATH,
    user_id=None,
    top_n_similarity: int = TOP_N_SIMILARITY,
    top_n_posts: int = TOP_N_POSTS,
) -> List[Recommendation]:
    """
    运行帖子推荐主流程

    Args:
        interactions_path: 交互记录CSV文件路径
        output_path: 推荐结果输出路径，None表示不写文件
        user_id: 目标用户ID，None表示为所有用户计算
        top_n_similarity: 参与打分的相似用户数量
        top_n_posts: 每个用户的推荐数量

    Returns:
        推荐结果列表
    """
    start_time = time.time()

    try:
        logger.info("=" * 60)
        logger.info("Post Recommender - Starting")
        logger.info("=" * 60)

        loader = InteractionLoader(interactions_path)
        store = RecommendationStore()
        pipeline = RecommendationPipeline(
            fetch_all_weights=loader.fetch_all_weights,
            cache=RecommendationCache(),
            store=store,
            top_n_similarity=top_n_similarity,
            top_n_posts=top_n_posts,
            show_progress=user_id is None,
        )

        if user_id is None:
            recommendations = pipeline.run_for_all_users()
        else:
            recommendations = pipeline.run_for_user(user_id)

        if output_path:
            store.write_csv(output_path)

        elapsed_time = time.time() - start_time
        logger.info(f"Run stats: {pipeline.last_run_stats}")
        logger.info(f"Total processing time: {elapsed_time:.2f} seconds")
        logger.info("=" * 60)
        logger.info("Post Recommender - Completed Successfully")
        logger.info("=" * 60)

        return recommendations

    except PostRecommenderError as e:
        logger.error(f"Post recommender error: {str(e)}")
        raise
    except Exception as e:
        logger.error(f"Unexpected error: {str(e)}")
        raise


def _parse_user_id(value: str):
    # 数据库中的用户ID通常是整数
    try:
        return int(value)
    except ValueError:
        return value


def main(argv: Optional[List[str]] = None) -> int:
    import argparse

    parser = argparse.ArgumentParser(description='User-based collaborative filtering post recommender')
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument('--user-id', type=_parse_user_id, default=None,
                        help='Compute recommendations for a single user')
    target.add_argument('--all-users', action='store_true',
                        help='Compute recommendations for every user (daily batch)')
    parser.add_argument('--interactions', type=str, default=INTERACTIONS_PATH,
                        help='Interaction records CSV (user_id, post_id, view_count, favorite)')
    parser.add_argument('--output', type=str, default=OUTPUT_PATH,
                        help=f'Output CSV path (default: {OUTPUT_PATH})')
    parser.add_argument('--top-similar', type=int, default=TOP_N_SIMILARITY,
                        help='Number of similar users used for scoring')
    parser.add_argument('--top-posts', type=int, default=TOP_N_POSTS,
                        help='Number of posts recommended per user')

    args = parser.parse_args(argv)

    try:
        recommendations = run_post_recommender(
            interactions_path=args.interactions,
            output_path=args.output,
            user_id=None if args.all_users else args.user_id,
            top_n_similarity=args.top_similar,
            top_n_posts=args.top_posts,
        )
        print(f"\nGenerated {len(recommendations)} recommendations")
        if not args.all_users:
            for rec in recommendations[:10]:
                print(f"  post {rec.post_id}: {rec.score:.4f}")
        return 0
    except Exception as e:
        print(f"Error: {str(e)}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
