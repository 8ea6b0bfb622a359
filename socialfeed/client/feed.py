# socialfeed/client/feed.py
import logging
from typing import Dict, List, Optional

from marshmallow import ValidationError

from socialfeed.api.posts.schemas import PostResponseSchema
from socialfeed.client.comment_fetcher import CommentTreeFetcher
from socialfeed.client.dispatcher import GenerationCounter, MutationDispatcher
from socialfeed.client.exceptions import ApiError
from socialfeed.client.post_store import PostStore
from socialfeed.models.comment import Comment

logger = logging.getLogger(__name__)


class FeedController:
    """
    피드 화면(홈/프로필) 하나의 데이터를 관리하는 컨트롤러.
    - PostStore, 게시물별 댓글 캐시, CommentTreeFetcher, MutationDispatcher를 소유합니다.
    - 저장소와 캐시는 이 컨트롤러와 디스패처만 응답 도착 시 덮어씁니다.
    """
    def __init__(self, api, user_id: Optional[str] = None, feed_path: str = "/posts",
                 from_name: Optional[str] = None, search: Optional[str] = None):
        self.api = api
        self.user_id = user_id
        self.feed_path = feed_path
        self.search = search
        self.store = PostStore()
        self.fetcher = CommentTreeFetcher(api)
        self.generations = GenerationCounter()
        self._comment_cache: Dict[str, List[Comment]] = {}
        self.dispatcher = MutationDispatcher(
            api, self.store, self.fetcher,
            comment_cache=self._comment_cache,
            feed_loader=self.refresh,
            generations=self.generations,
            from_name=from_name,
        )

    @classmethod
    def for_profile(cls, api, profile_user_id: str, user_id: Optional[str] = None,
                    from_name: Optional[str] = None) -> "FeedController":
        """특정 사용자의 게시물만 보여주는 프로필 피드."""
        return cls(api, user_id=user_id, feed_path=f"/posts/get-user-post/{profile_user_id}",
                   from_name=from_name)

    def refresh(self) -> bool:
        """
        피드를 서버에서 다시 불러와 통째로 교체합니다.
        실패하면 기존 목록을 그대로 두고 False를 반환합니다.
        """
        if not self.api.is_authenticated:
            return False

        key = ("feed",)
        generation = self.generations.next(key)
        try:
            body = self.api.post(self.feed_path, {"search": self.search} if self.search else {})
            posts = PostResponseSchema(many=True).load(body.get("data") or [])
        except ApiError as e:
            logger.warning(f"피드 조회 실패 ({self.feed_path}): {e.message}")
            return False
        except ValidationError as e:
            logger.warning(f"피드 응답 파싱 실패 ({self.feed_path}): {e.messages}")
            return False

        if not self.generations.is_current(key, generation):
            logger.debug(f"오래된 피드 응답 무시 ({self.feed_path})")
            return False

        for post in posts:
            if post.post_id in self._comment_cache:
                post.comment_count = len(self._comment_cache[post.post_id])
        self.store.load(posts)
        return True

    @property
    def posts(self):
        return self.store.all()

    def is_liked(self, post_id: str) -> bool:
        return self.store.is_liked_by(post_id, self.user_id)

    def comments(self, post_id: str) -> List[Comment]:
        """댓글 트리를 반환합니다. 처음 접근할 때만 서버에서 불러옵니다."""
        if post_id not in self._comment_cache:
            return self.refresh_comments(post_id)
        return self._comment_cache[post_id]

    def refresh_comments(self, post_id: str) -> List[Comment]:
        return self.dispatcher.resync_comments(post_id)

    def comment_count(self, post_id: str) -> Optional[int]:
        """댓글을 불러온 뒤에는 목록 길이, 아직 불러오지 않았다면 None(알 수 없음)."""
        if post_id in self._comment_cache:
            return len(self._comment_cache[post_id])
        post = self.store.get(post_id)
        return post.comment_count if post else None

    def close(self) -> None:
        self.dispatcher.close()
