# socialfeed/models/comment.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List

from socialfeed.models.post import AuthorSnapshot, unique_likers


@dataclass
class Reply:
    """
    댓글 문서의 'replies' 배열에 저장되는 답글.
    comment_id는 생성 시점에 정해지며 다른 댓글로 옮겨지지 않습니다.
    """
    reply_id: str
    comment_id: str
    author: AuthorSnapshot
    comment: str
    reply_at: Optional[str] = None
    likes: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        self.likes = unique_likers(self.likes)


@dataclass
class Comment:
    """
    Firestore 'comments' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    답글은 별도 컬렉션 없이 replies 배열에 작성 순서대로 들어갑니다.
    """
    comment_id: str
    post_id: str
    author: AuthorSnapshot
    comment: str
    reply_at: Optional[str] = None
    likes: List[str] = field(default_factory=list)
    replies: List[Reply] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        self.likes = unique_likers(self.likes)

    def find_reply(self, reply_id: str) -> Optional[Reply]:
        return next((r for r in self.replies if r.reply_id == reply_id), None)
