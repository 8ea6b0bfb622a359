# socialfeed/models/post.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Iterable


def unique_likers(likes: Iterable[str]) -> List[str]:
    """좋아요 목록에서 중복을 제거합니다. 처음 등장한 순서는 그대로 유지됩니다."""
    seen = set()
    result = []
    for user_id in likes or []:
        if user_id and user_id not in seen:
            seen.add(user_id)
            result.append(user_id)
    return result


def toggle_liker(likes: Iterable[str], user_id: str) -> List[str]:
    """
    좋아요 토글 규칙.
    - 이미 누른 사용자면 목록에서 제거하고, 아니면 맨 뒤에 추가합니다.
    - 결과에는 같은 user_id가 두 번 이상 들어가지 않습니다.
    """
    current = unique_likers(likes)
    if user_id in current:
        current.remove(user_id)
    else:
        current.append(user_id)
    return current


@dataclass(frozen=True)
class AuthorSnapshot:
    """
    게시물/댓글/답글 작성 시점에 고정되는 작성자 정보.
    작성자가 이후 프로필을 바꿔도 이미 작성된 글의 표시는 바뀌지 않습니다.
    """
    user_id: str
    name: str
    profile_url: Optional[str] = None


@dataclass
class Post:
    """
    Firestore 'posts' 컬렉션의 문서 구조이자 피드에 표시되는 게시물.
    """
    post_id: str
    author: AuthorSnapshot
    description: str
    image: Optional[str] = None
    likes: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    # 댓글을 아직 불러오지 않았다면 None (알 수 없음)
    comment_count: Optional[int] = None

    def __post_init__(self):
        self.likes = unique_likers(self.likes)

    def is_liked_by(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and user_id in self.likes
