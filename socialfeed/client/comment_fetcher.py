# socialfeed/client/comment_fetcher.py
import logging
from typing import List, Optional

from marshmallow import ValidationError

from socialfeed.api.posts.schemas import CommentResponseSchema
from socialfeed.client.exceptions import ApiError
from socialfeed.models.comment import Comment

logger = logging.getLogger(__name__)


class CommentTreeFetcher:
    """
    게시물 하나의 댓글 트리를 가져옵니다.
    서버는 답글을 댓글 안에 중첩해서 한 번에 내려주므로 답글용 요청은 따로 없습니다.
    """
    def __init__(self, api):
        self.api = api

    def fetch(self, post_id: Optional[str]) -> List[Comment]:
        """
        댓글 목록을 서버 순서 그대로 반환합니다.
        - post_id가 없으면 요청하지 않고 빈 목록을 반환합니다.
        - 전송/파싱 실패는 '댓글 없음'으로 처리하며 예외를 밖으로 던지지 않습니다.
        """
        if not post_id:
            return []

        try:
            body = self.api.get(f"/posts/comments/{post_id}")
            data = body.get("data")
            if not isinstance(data, list):
                return []
            return CommentResponseSchema(many=True).load(data)
        except ApiError as e:
            logger.warning(f"댓글 조회 실패 (post_id: {post_id}): {e.message}")
        except ValidationError as e:
            logger.warning(f"댓글 응답 파싱 실패 (post_id: {post_id}): {e.messages}")
        return []
