# socialfeed/client/__init__.py
"""
피드 동기화 클라이언트 패키지

게시물 목록(PostStore), 댓글 트리 조회(CommentTreeFetcher),
변경 요청 실행(MutationDispatcher)과 이를 묶는 FeedController를 제공합니다.
"""

from .api_client import ApiClient
from .comment_fetcher import CommentTreeFetcher
from .dispatcher import (
    MutationDispatcher, MutationResult, MutationState,
    NewComment, NewReply, submission_for,
)
from .exceptions import ApiError, ApiRequestError, TransportError
from .feed import FeedController
from .post_store import PostStore

__all__ = [
    'ApiClient', 'CommentTreeFetcher', 'FeedController', 'PostStore',
    'MutationDispatcher', 'MutationResult', 'MutationState',
    'NewComment', 'NewReply', 'submission_for',
    'ApiError', 'ApiRequestError', 'TransportError',
]
