# socialfeed/api/posts/test_routes.py
"""
게시물 API 라우트 테스트

Firestore 대신 메모리 서비스를 create_app(services=...)로 주입해서 검증합니다.
"""
import uuid
from dataclasses import asdict
from datetime import datetime, timedelta, timezone

import pytest
from flask_jwt_extended import create_access_token

from socialfeed import create_app
from socialfeed.models.comment import Comment, Reply
from socialfeed.models.post import AuthorSnapshot, Post, toggle_liker

BASE_TIME = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


class InMemoryPostService:
    """PostService와 같은 인터페이스를 가진 메모리 구현"""
    def __init__(self):
        self.posts = {}
        self.comments = {}

    def _author(self, user_id, fallback_name=None):
        return AuthorSnapshot(user_id=user_id, name=fallback_name or f"User {user_id}")

    def add_post(self, post_id, author_id, minutes=0):
        post = Post(post_id=post_id, author=self._author(author_id), description=f"{post_id} 본문",
                    created_at=BASE_TIME + timedelta(minutes=minutes))
        self.posts[post_id] = asdict(post)
        return self.posts[post_id]

    def create_post(self, user_id, description, image=None):
        post = Post(post_id=str(uuid.uuid4()), author=self._author(user_id), description=description, image=image)
        self.posts[post.post_id] = asdict(post)
        return self.posts[post.post_id]

    def get_posts(self, search=None):
        posts = sorted(self.posts.values(), key=lambda p: p['created_at'], reverse=True)
        if search:
            posts = [p for p in posts if search.lower() in p['description'].lower()]
        return posts

    def get_user_posts(self, author_id):
        return [p for p in self.get_posts() if p['author']['user_id'] == author_id]

    def toggle_post_like(self, user_id, post_id):
        if post_id not in self.posts:
            raise ValueError("게시물을 찾을 수 없습니다.")
        self.posts[post_id]['likes'] = toggle_liker(self.posts[post_id]['likes'], user_id)
        return self.posts[post_id]['likes']

    def delete_post(self, post_id, user_id):
        post = self.posts.get(post_id)
        if post is None:
            raise ValueError("삭제할 게시물이 없습니다.")
        if post['author']['user_id'] != user_id:
            raise PermissionError("게시물을 삭제할 권한이 없습니다.")
        del self.posts[post_id]

    def get_comments(self, post_id):
        return [c for c in self.comments.values() if c['post_id'] == post_id]

    def create_comment(self, post_id, user_id, text, from_name=None, reply_at=None):
        if post_id not in self.posts:
            raise ValueError("댓글을 작성할 게시물이 존재하지 않습니다.")
        comment = Comment(comment_id=f"c{len(self.comments) + 1}", post_id=post_id,
                          author=self._author(user_id, from_name), comment=text, reply_at=reply_at)
        self.comments[comment.comment_id] = asdict(comment)
        return self.comments[comment.comment_id]

    def create_reply(self, comment_id, user_id, text, from_name=None, reply_at=None):
        if comment_id not in self.comments:
            raise ValueError("답글을 작성할 댓글이 존재하지 않습니다.")
        reply = Reply(reply_id=f"r{len(self.comments[comment_id]['replies']) + 1}", comment_id=comment_id,
                      author=self._author(user_id, from_name), comment=text, reply_at=reply_at)
        self.comments[comment_id]['replies'].append(asdict(reply))
        return asdict(reply)

    def toggle_comment_like(self, user_id, comment_id):
        if comment_id not in self.comments:
            raise ValueError("좋아요를 누를 댓글을 찾을 수 없습니다.")
        comment = self.comments[comment_id]
        comment['likes'] = toggle_liker(comment['likes'], user_id)
        return comment['likes']

    def toggle_reply_like(self, user_id, comment_id, reply_id):
        if comment_id not in self.comments:
            raise ValueError("좋아요를 누를 댓글을 찾을 수 없습니다.")
        reply = next((r for r in self.comments[comment_id]['replies'] if r['reply_id'] == reply_id), None)
        if reply is None:
            raise ValueError("좋아요를 누를 답글을 찾을 수 없습니다.")
        reply['likes'] = toggle_liker(reply['likes'], user_id)
        return reply['likes']


@pytest.fixture
def service():
    service = InMemoryPostService()
    service.add_post("p1", "u9", minutes=0)
    service.add_post("p2", "u1", minutes=5)
    return service


@pytest.fixture
def app(service):
    return create_app('testing', services={'posts': service})


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    with app.app_context():
        token = create_access_token(identity="u1")
    return {"Authorization": f"Bearer {token}"}


def test_feed_requires_token(client):
    response = client.post('/posts', json={})
    assert response.status_code == 401


def test_feed_lists_newest_first(client, auth_headers):
    response = client.post('/posts', json={}, headers=auth_headers)

    assert response.status_code == 200
    body = response.get_json()
    assert body["success"] is True
    assert [p["post_id"] for p in body["data"]] == ["p2", "p1"]
    assert body["data"][0]["author"] == {"user_id": "u1", "name": "User u1", "profile_url": None}


def test_feed_search_filters_description(client, auth_headers):
    response = client.post('/posts', json={"search": "p1"}, headers=auth_headers)
    assert [p["post_id"] for p in response.get_json()["data"]] == ["p1"]


def test_user_posts(client, auth_headers):
    response = client.post('/posts/get-user-post/u9', headers=auth_headers)
    assert [p["post_id"] for p in response.get_json()["data"]] == ["p1"]


def test_create_post(client, auth_headers, service):
    response = client.post('/posts/create-post', json={"description": "새 글"}, headers=auth_headers)

    assert response.status_code == 201
    data = response.get_json()["data"]
    assert data["description"] == "새 글"
    assert data["author"]["user_id"] == "u1"
    assert len(service.posts) == 3


def test_create_post_rejects_blank_description(client, auth_headers):
    response = client.post('/posts/create-post', json={"description": "  "}, headers=auth_headers)

    assert response.status_code == 400
    assert response.get_json()["status"] == "failed"


def test_like_toggles_and_returns_likes(client, auth_headers):
    first = client.post('/posts/like/p1', headers=auth_headers)
    second = client.post('/posts/like/p1', headers=auth_headers)

    assert first.get_json()["data"] == {"likes": ["u1"]}
    assert second.get_json()["data"] == {"likes": []}


def test_like_missing_post(client, auth_headers):
    response = client.post('/posts/like/nope', headers=auth_headers)

    assert response.status_code == 404
    assert response.get_json() == {"status": "failed", "message": "게시물을 찾을 수 없습니다."}


def test_delete_only_by_owner(client, auth_headers, service):
    forbidden = client.delete('/posts/p1', headers=auth_headers)
    assert forbidden.status_code == 403
    assert "p1" in service.posts

    deleted = client.delete('/posts/p2', headers=auth_headers)
    assert deleted.status_code == 204
    assert deleted.data == b""
    assert "p2" not in service.posts


def test_comment_and_reply_are_nested_in_one_response(client, auth_headers):
    created = client.post('/posts/comment/p1', json={"comment": "첫 댓글", "from": "Minsu Lee"},
                          headers=auth_headers)
    assert created.status_code == 201

    replied = client.post('/posts/reply-comment/c1',
                          json={"comment": "답글", "from": "Minsu Lee", "replyAt": "Minsu Lee"},
                          headers=auth_headers)
    assert replied.status_code == 201

    response = client.get('/posts/comments/p1')
    comments = response.get_json()["data"]
    assert len(comments) == 1
    assert comments[0]["comment"] == "첫 댓글"
    assert comments[0]["replies"][0]["comment"] == "답글"
    assert comments[0]["replies"][0]["replyAt"] == "Minsu Lee"
    assert comments[0]["replies"][0]["comment_id"] == "c1"


def test_empty_comment_is_rejected(client, auth_headers, service):
    response = client.post('/posts/comment/p1', json={"comment": ""}, headers=auth_headers)

    assert response.status_code == 400
    assert "comment" in response.get_json()["details"]
    assert service.comments == {}


def test_reply_to_missing_comment(client, auth_headers):
    response = client.post('/posts/reply-comment/nope', json={"comment": "답글"}, headers=auth_headers)
    assert response.status_code == 404


def test_comment_and_reply_likes(client, auth_headers, service):
    client.post('/posts/comment/p1', json={"comment": "댓글"}, headers=auth_headers)
    client.post('/posts/reply-comment/c1', json={"comment": "답글"}, headers=auth_headers)

    assert client.post('/posts/like-comment/c1', headers=auth_headers).status_code == 200
    assert client.post('/posts/like-comment/c1/r1', headers=auth_headers).status_code == 200
    assert client.post('/posts/like-comment/c1/r9', headers=auth_headers).status_code == 404

    assert service.comments["c1"]["likes"] == ["u1"]
    assert service.comments["c1"]["replies"][0]["likes"] == ["u1"]


def test_unexpected_error_returns_failed_envelope(app, client, auth_headers, service):
    def broken(post_id):
        raise RuntimeError("boom")
    service.get_comments = broken

    response = client.get('/posts/comments/p1')

    assert response.status_code == 500
    assert response.get_json()["status"] == "failed"
