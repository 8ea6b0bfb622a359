# socialfeed/client/dispatcher.py
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Hashable, List, Optional, Union

from marshmallow import ValidationError

from socialfeed.api.posts.schemas import CommentCreateSchema, LikesResponseSchema, PostCreateSchema
from socialfeed.client.exceptions import ApiError
from socialfeed.core.config import Config
from socialfeed.models.comment import Comment

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "요청 처리 중 오류가 발생했습니다. 다시 시도해주세요."


class MutationState(Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class MutationResult:
    """변경 요청 하나의 최종 결과. 실패해도 예외 대신 이 객체가 반환됩니다."""
    state: MutationState
    message: str = ""
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.state is MutationState.SUCCEEDED


@dataclass(frozen=True)
class NewComment:
    """게시물에 다는 최상위 댓글."""
    post_id: str
    text: str


@dataclass(frozen=True)
class NewReply:
    """
    댓글에 다는 답글.
    post_id는 작성 후 다시 불러올 댓글 트리의 게시물이며 없으면 전송하지 않습니다.
    """
    comment_id: str
    text: str
    reply_at: str
    post_id: str


Submission = Union[NewComment, NewReply]


def submission_for(parent_id: str, text: str, reply_at: Optional[str] = None,
                   post_id: Optional[str] = None) -> Submission:
    """
    하나의 입력 폼에서 댓글/답글을 구분하던 기존 방식.
    reply_at이 있으면 parent_id를 댓글 id로 보고 답글을, 없으면 게시물 id로 보고 댓글을 만듭니다.
    답글은 댓글 트리를 다시 불러와야 하므로 post_id가 함께 있어야 제출됩니다.
    """
    if reply_at:
        return NewReply(comment_id=parent_id, text=text, reply_at=reply_at, post_id=post_id)
    return NewComment(post_id=parent_id, text=text)


class GenerationCounter:
    """
    엔티티별 요청 세대 번호.
    응답이 도착했을 때 그 사이 같은 엔티티에 새 요청이 나갔다면 오래된 응답은 반영하지 않습니다.
    """
    def __init__(self):
        self._lock = threading.Lock()
        self._current: Dict[Hashable, int] = {}

    def next(self, key: Hashable) -> int:
        with self._lock:
            self._current[key] = self._current.get(key, 0) + 1
            return self._current[key]

    def is_current(self, key: Hashable, generation: int) -> bool:
        with self._lock:
            return self._current.get(key) == generation


class MutationDispatcher:
    """
    사용자 동작(좋아요, 댓글/답글 작성, 게시물 작성/삭제)을 요청 하나로 실행하고
    성공하면 영향을 받은 화면 데이터를 서버에서 다시 불러옵니다.

    상태 흐름: IDLE -> IN_FLIGHT -> SUCCEEDED | FAILED -> IDLE
    - 로컬에서 낙관적으로 값을 바꾸지 않습니다. 반영되는 값은 항상 서버 응답입니다.
    - 실패 시 재시도하지 않으며 PostStore와 댓글 캐시는 그대로 둡니다.
    - 같은 폼(댓글/답글/게시물 작성)은 요청 중에 다시 제출할 수 없습니다.
      좋아요는 막지 않으므로 연속 클릭은 각각 전송됩니다.
    """
    def __init__(self, api, store, fetcher, comment_cache: Optional[Dict[str, List[Comment]]] = None,
                 feed_loader: Optional[Callable[[], bool]] = None,
                 generations: Optional[GenerationCounter] = None,
                 from_name: Optional[str] = None, max_workers: Optional[int] = None):
        self.api = api
        self.store = store
        self.fetcher = fetcher
        self.comment_cache = comment_cache if comment_cache is not None else {}
        self.feed_loader = feed_loader
        self.generations = generations or GenerationCounter()
        self.from_name = from_name
        self.max_workers = max_workers or Config.FEED_DISPATCH_WORKERS

        self._lock = threading.Lock()
        self._in_flight: Dict[Hashable, int] = {}
        self._executor: Optional[ThreadPoolExecutor] = None

    # --- 상태 관리 ---

    def state(self, key: Hashable) -> MutationState:
        """폼/컨트롤 하나의 현재 상태. 요청 중이면 IN_FLIGHT, 아니면 IDLE입니다."""
        with self._lock:
            return MutationState.IN_FLIGHT if self._in_flight.get(key) else MutationState.IDLE

    def _try_begin(self, key: Hashable, exclusive: bool) -> bool:
        with self._lock:
            if exclusive and self._in_flight.get(key):
                return False
            self._in_flight[key] = self._in_flight.get(key, 0) + 1
            return True

    def _finish(self, key: Hashable) -> None:
        with self._lock:
            remaining = self._in_flight.get(key, 0) - 1
            if remaining > 0:
                self._in_flight[key] = remaining
            else:
                self._in_flight.pop(key, None)

    @contextmanager
    def _in_flight_for(self, key: Hashable):
        try:
            yield
        finally:
            self._finish(key)

    def _rejected(self, message: str) -> MutationResult:
        return MutationResult(MutationState.FAILED, message)

    def _failed(self, action: str, target: str, error: Exception) -> MutationResult:
        if isinstance(error, ApiError):
            logger.warning(f"{action} 실패 ({target}): {error.message}")
            message = error.message or GENERIC_FAILURE_MESSAGE
        else:
            logger.warning(f"{action} 응답 처리 실패 ({target}): {error}")
            message = GENERIC_FAILURE_MESSAGE
        return MutationResult(MutationState.FAILED, message)

    # --- 재동기화 ---

    def resync_comments(self, post_id: Optional[str]) -> List[Comment]:
        """게시물의 댓글 트리를 다시 불러와 캐시를 통째로 교체합니다."""
        if not post_id:
            return []
        key = ("comments", post_id)
        generation = self.generations.next(key)
        comments = self.fetcher.fetch(post_id)
        if self.generations.is_current(key, generation):
            self.comment_cache[post_id] = comments
        else:
            logger.debug(f"오래된 댓글 응답 무시 (post_id: {post_id})")
        return self.comment_cache.get(post_id, comments)

    def _resync_feed(self) -> None:
        if self.feed_loader is not None:
            self.feed_loader()

    # --- 게시물 ---

    def like_post(self, post_id: str) -> MutationResult:
        """게시물 좋아요를 토글합니다. 서버가 돌려준 좋아요 목록으로 덮어쓴 뒤 피드를 다시 불러옵니다."""
        if not post_id:
            return self._rejected("게시물 id가 필요합니다.")
        if not self.api.is_authenticated:
            return self._rejected("로그인이 필요합니다.")

        key = ("post", post_id)
        generation = self.generations.next(key)
        self._try_begin(("like-post", post_id), exclusive=False)
        with self._in_flight_for(("like-post", post_id)):
            try:
                body = self.api.post(f"/posts/like/{post_id}")
                likes = LikesResponseSchema().load(body.get("data") or {})["likes"]
            except (ApiError, ValidationError) as e:
                return self._failed("게시물 좋아요", f"post_id: {post_id}", e)

            if self.generations.is_current(key, generation):
                self.store.replace_likes(post_id, likes)
            else:
                logger.debug(f"오래된 좋아요 응답 무시 (post_id: {post_id})")

        self._resync_feed()
        return MutationResult(MutationState.SUCCEEDED, body.get("message", ""), likes)

    def delete_post(self, post_id: str) -> MutationResult:
        """게시물을 삭제하고 삭제가 확인되면 목록에서 바로 제거합니다."""
        if not post_id:
            return self._rejected("게시물 id가 필요합니다.")
        if not self.api.is_authenticated:
            return self._rejected("로그인이 필요합니다.")

        self._try_begin(("delete-post", post_id), exclusive=False)
        with self._in_flight_for(("delete-post", post_id)):
            try:
                body = self.api.delete(f"/posts/{post_id}")
            except ApiError as e:
                return self._failed("게시물 삭제", f"post_id: {post_id}", e)

            # 서버가 확인한 삭제는 이후 요청과 관계없이 항상 반영
            self.store.remove(post_id)
            self.comment_cache.pop(post_id, None)

        self._resync_feed()
        return MutationResult(MutationState.SUCCEEDED, body.get("message", "게시물이 삭제되었습니다."))

    def create_post(self, description: str, image: Optional[str] = None) -> MutationResult:
        """새 게시물을 작성하고 성공하면 피드를 다시 불러옵니다. 이미지는 업로드된 URL만 받습니다."""
        payload = {"description": description, "image": image}
        errors = PostCreateSchema().validate(payload)
        if errors:
            return self._rejected(_first_error(errors))
        if not self.api.is_authenticated:
            return self._rejected("로그인이 필요합니다.")

        key = ("create-post",)
        if not self._try_begin(key, exclusive=True):
            return self._rejected("이미 등록 중입니다.")
        with self._in_flight_for(key):
            try:
                body = self.api.post("/posts/create-post", payload)
            except ApiError as e:
                return self._failed("게시물 작성", "create-post", e)

        self._resync_feed()
        return MutationResult(MutationState.SUCCEEDED, body.get("message", ""), body.get("data"))

    # --- 댓글 / 답글 ---

    def submit(self, submission: Submission, from_name: Optional[str] = None) -> MutationResult:
        """
        댓글 또는 답글을 작성합니다.
        - 빈 내용은 요청을 보내지 않고 바로 거부합니다.
        - 성공하면 해당 게시물의 댓글 트리를 다시 불러옵니다.
        """
        reply_at = submission.reply_at if isinstance(submission, NewReply) else None
        payload = {
            "comment": submission.text,
            "from": from_name or self.from_name,
            "replyAt": reply_at,
        }
        errors = CommentCreateSchema().validate(payload)
        if errors:
            return self._rejected(_first_error(errors))
        if not self.api.is_authenticated:
            return self._rejected("로그인이 필요합니다.")
        if not submission.post_id:
            return self._rejected("게시물 id가 필요합니다.")

        if isinstance(submission, NewReply):
            if not submission.comment_id:
                return self._rejected("답글을 달 댓글 id가 필요합니다.")
            url = f"/posts/reply-comment/{submission.comment_id}"
            key = ("reply-form", submission.comment_id)
        else:
            url = f"/posts/comment/{submission.post_id}"
            key = ("comment-form", submission.post_id)

        if not self._try_begin(key, exclusive=True):
            return self._rejected("이미 등록 중입니다.")
        with self._in_flight_for(key):
            try:
                body = self.api.post(url, payload)
            except ApiError as e:
                return self._failed("댓글 작성", url, e)

        self.resync_comments(submission.post_id)
        return MutationResult(MutationState.SUCCEEDED, body.get("message", ""))

    def like_comment(self, post_id: str, comment_id: str) -> MutationResult:
        """댓글 좋아요를 토글하고 댓글 트리를 다시 불러옵니다."""
        if not comment_id:
            return self._rejected("좋아요를 누를 댓글 id가 필요합니다.")
        return self._like_in_tree(post_id, f"/posts/like-comment/{comment_id}", ("comment", comment_id))

    def like_reply(self, post_id: str, comment_id: str, reply_id: str) -> MutationResult:
        """답글 좋아요를 토글하고 댓글 트리를 다시 불러옵니다."""
        if not comment_id or not reply_id:
            return self._rejected("좋아요를 누를 답글의 댓글 id와 답글 id가 모두 필요합니다.")
        return self._like_in_tree(post_id, f"/posts/like-comment/{comment_id}/{reply_id}",
                                  ("reply", comment_id, reply_id))

    def _like_in_tree(self, post_id: str, url: str, key: Hashable) -> MutationResult:
        if not post_id:
            return self._rejected("게시물 id가 필요합니다.")
        if not self.api.is_authenticated:
            return self._rejected("로그인이 필요합니다.")

        self._try_begin(key, exclusive=False)
        with self._in_flight_for(key):
            try:
                body = self.api.post(url)
            except ApiError as e:
                return self._failed("댓글 좋아요", url, e)

        self.resync_comments(post_id)
        return MutationResult(MutationState.SUCCEEDED, body.get("message", ""))

    # --- 비동기 실행 ---

    def dispatch_async(self, mutation: Callable[..., MutationResult], *args, **kwargs) -> "Future[MutationResult]":
        """
        변경 요청을 워커 스레드에서 실행하고 Future를 반환합니다.
        요청 중에도 호출한 쪽은 계속 다른 작업을 할 수 있습니다. 취소는 지원하지 않습니다.
        """
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=self.max_workers,
                                                    thread_name_prefix="feed-dispatch")
            executor = self._executor
        return executor.submit(mutation, *args, **kwargs)

    def close(self) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def _first_error(errors: Dict[str, Any]) -> str:
    """marshmallow 오류 dict에서 사용자에게 보여줄 첫 메시지를 꺼냅니다."""
    for messages in errors.values():
        if isinstance(messages, list) and messages:
            return str(messages[0])
        if isinstance(messages, str):
            return messages
    return "입력값이 올바르지 않습니다."
