# socialfeed/client/conftest.py
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from socialfeed.client.exceptions import ApiRequestError
from socialfeed.models.post import toggle_liker
from socialfeed.utils.datetime_utils import to_iso

BASE_TIME = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


def post_payload(post_id, author_id="u9", likes=None, minutes=0):
    return {
        "post_id": post_id,
        "author": {"user_id": author_id, "name": "Bora Kim", "profile_url": None},
        "description": f"{post_id} 본문",
        "image": None,
        "likes": list(likes or []),
        "created_at": to_iso(BASE_TIME + timedelta(minutes=minutes)),
    }


class FakeFeedApi:
    """
    ApiClient 자리에 넣는 메모리 서버.
    - 보낸 요청을 calls에 (method, url, data)로 기록합니다.
    - errors[url]에 예외를 넣으면 그 요청에서 예외를 던집니다.
    - after[url]에 함수를 넣으면 응답을 만든 뒤 돌려주기 전에 한 번 실행합니다.
    """
    def __init__(self, user_id="u1", token="token"):
        self.user_id = user_id
        self.token = token
        self.calls = []
        self.errors = {}
        self.after = {}
        self.posts = {}
        self.comments = {}

    @property
    def is_authenticated(self):
        return bool(self.token)

    def add_post(self, post_id, **kwargs):
        self.posts[post_id] = post_payload(post_id, minutes=len(self.posts), **kwargs)
        self.comments.setdefault(post_id, [])
        return self.posts[post_id]

    def add_comment(self, post_id, text="첫 댓글", replies=None):
        comment = {
            "comment_id": f"c{sum(len(c) for c in self.comments.values()) + 1}",
            "post_id": post_id,
            "author": {"user_id": "u2", "name": "Alice"},
            "comment": text,
            "likes": [],
            "replies": list(replies or []),
            "created_at": to_iso(BASE_TIME),
        }
        self.comments.setdefault(post_id, []).append(comment)
        return comment

    def _find_comment(self, comment_id):
        for comments in self.comments.values():
            for comment in comments:
                if comment["comment_id"] == comment_id:
                    return comment
        raise ApiRequestError("댓글을 찾을 수 없습니다.", 404)

    def _route(self, method, parts, data):
        # parts: "/posts/like/p1" -> ["like", "p1"]
        if method == "POST" and not parts:
            feed = sorted(self.posts.values(), key=lambda p: p["created_at"], reverse=True)
            return {"success": True, "data": feed}
        head = parts[0]
        if method == "POST" and head == "get-user-post":
            feed = [p for p in self.posts.values() if p["author"]["user_id"] == parts[1]]
            return {"success": True, "data": feed}
        if method == "POST" and head == "create-post":
            post_id = f"p{len(self.posts) + 1}"
            self.add_post(post_id, author_id=self.user_id)
            self.posts[post_id]["description"] = data["description"]
            return {"success": True, "message": "게시물이 등록되었습니다.", "data": self.posts[post_id]}
        if method == "POST" and head == "like":
            post = self.posts.get(parts[1])
            if post is None:
                raise ApiRequestError("게시물을 찾을 수 없습니다.", 404)
            post["likes"] = toggle_liker(post["likes"], self.user_id)
            return {"success": True, "data": {"likes": list(post["likes"])}}
        if method == "DELETE":
            if self.posts.pop(head, None) is None:
                raise ApiRequestError("삭제할 게시물이 없습니다.", 404)
            self.comments.pop(head, None)
            return {}
        if method == "GET" and head == "comments":
            return {"success": True, "data": [dict(c) for c in self.comments.get(parts[1], [])]}
        if method == "POST" and head == "comment":
            self.add_comment(parts[1], data["comment"])
            return {"success": True, "message": "댓글이 등록되었습니다."}
        if method == "POST" and head == "reply-comment":
            comment = self._find_comment(parts[1])
            comment["replies"].append({
                "reply_id": str(uuid.uuid4()),
                "author": {"user_id": self.user_id, "name": data.get("from") or "Me"},
                "comment": data["comment"],
                "replyAt": data.get("replyAt"),
                "likes": [],
                "created_at": to_iso(BASE_TIME),
            })
            return {"success": True, "message": "답글이 등록되었습니다."}
        if method == "POST" and head == "like-comment":
            comment = self._find_comment(parts[1])
            target = comment
            if len(parts) > 2:
                target = next(r for r in comment["replies"] if r["reply_id"] == parts[2])
            target["likes"] = toggle_liker(target["likes"], self.user_id)
            return {"success": True, "message": "좋아요 상태가 변경되었습니다."}
        raise ApiRequestError(f"알 수 없는 경로: {method} {parts}", 404)

    def request(self, url, method="GET", data=None):
        self.calls.append((method, url, data))
        if url in self.errors:
            raise self.errors[url]
        body = self._route(method, [p for p in url.split("/")[2:] if p], data)
        hook = self.after.pop(url, None)
        if hook is not None:
            hook()
        return body

    def get(self, url):
        return self.request(url, "GET")

    def post(self, url, data=None):
        return self.request(url, "POST", data if data is not None else {})

    def delete(self, url):
        return self.request(url, "DELETE")

    def urls(self, method=None):
        return [url for m, url, _ in self.calls if method is None or m == method]


@pytest.fixture
def api():
    return FakeFeedApi()
