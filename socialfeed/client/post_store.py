# socialfeed/client/post_store.py
import threading
from dataclasses import replace
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from socialfeed.models.post import Post, unique_likers


class PostStore:
    """
    현재 화면에 표시 중인 게시물 목록.
    - load는 항상 전체 교체이며 이전 상태와 병합하지 않습니다.
    - 좋아요 여부 조회는 게시물별 set 인덱스로 O(1)에 답합니다.
    """
    def __init__(self):
        self._lock = threading.RLock()
        self._posts: List[Post] = []
        self._likers: Dict[str, Set[str]] = {}

    def load(self, posts: Iterable[Post]) -> None:
        with self._lock:
            self._posts = list(posts)
            self._likers = {p.post_id: set(p.likes) for p in self._posts}

    def remove(self, post_id: str) -> bool:
        """게시물 하나를 제거합니다. 없는 id면 아무것도 하지 않고 False를 반환합니다."""
        with self._lock:
            before = len(self._posts)
            self._posts = [p for p in self._posts if p.post_id != post_id]
            self._likers.pop(post_id, None)
            return len(self._posts) != before

    def replace_likes(self, post_id: str, likes: Iterable[str]) -> bool:
        """서버가 돌려준 좋아요 목록으로 덮어씁니다. (병합하지 않음)"""
        with self._lock:
            for index, post in enumerate(self._posts):
                if post.post_id == post_id:
                    updated = replace(post, likes=unique_likers(likes))
                    self._posts[index] = updated
                    self._likers[post_id] = set(updated.likes)
                    return True
            return False

    def get(self, post_id: str) -> Optional[Post]:
        with self._lock:
            return next((p for p in self._posts if p.post_id == post_id), None)

    def all(self) -> Tuple[Post, ...]:
        with self._lock:
            return tuple(self._posts)

    def is_liked_by(self, post_id: str, user_id: Optional[str]) -> bool:
        with self._lock:
            return bool(user_id) and user_id in self._likers.get(post_id, ())

    def __len__(self) -> int:
        with self._lock:
            return len(self._posts)

    def __contains__(self, post_id: object) -> bool:
        with self._lock:
            return post_id in self._likers

    def __iter__(self) -> Iterator[Post]:
        return iter(self.all())
