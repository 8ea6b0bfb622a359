# socialfeed/api/posts/services.py
import logging
import uuid
from dataclasses import asdict
from firebase_admin import firestore
from typing import Optional, Dict, Any, List

from socialfeed.models.post import Post, AuthorSnapshot, toggle_liker
from socialfeed.models.comment import Comment, Reply
from socialfeed.utils.datetime_utils import DateTimeUtils


class PostService:
    """
    게시물, 댓글, 답글 관련 비즈니스 로직을 담당하는 서비스 클래스.
    - 답글은 댓글 문서의 replies 배열에 저장됩니다.
    - 좋아요는 각 문서의 likes 배열로 관리하며 트랜잭션 안에서 토글합니다.
    """
    def __init__(self, db=None):
        """서비스 초기화 시 Firestore 클라이언트 및 컬렉션 참조를 설정합니다."""
        self.db = db or firestore.client()
        self.posts_ref = self.db.collection('posts')
        self.comments_ref = self.db.collection('comments')
        self.users_ref = self.db.collection('users')

    def _author_snapshot(self, user_id: str, fallback_name: Optional[str] = None) -> AuthorSnapshot:
        """작성 시점의 사용자 정보를 고정된 스냅샷으로 만듭니다."""
        user_doc = self.users_ref.document(user_id).get()
        if not user_doc.exists:
            if fallback_name:
                return AuthorSnapshot(user_id=user_id, name=fallback_name)
            raise ValueError("작성자 정보를 찾을 수 없습니다.")

        user_info = user_doc.to_dict()
        name = f"{user_info.get('first_name', '')} {user_info.get('last_name', '')}".strip()
        return AuthorSnapshot(
            user_id=user_id,
            name=name or fallback_name or "Unknown",
            profile_url=user_info.get('profile_url'),
        )

    # --- 게시물 ---

    def create_post(self, user_id: str, description: str, image: Optional[str] = None) -> Dict[str, Any]:
        """새 게시물을 생성하고 Firestore에 저장합니다."""
        author = self._author_snapshot(user_id)
        new_post = Post(
            post_id=str(uuid.uuid4()),
            author=author,
            description=description,
            image=image,
            created_at=DateTimeUtils.now(),
        )
        data = asdict(new_post)
        data.pop('comment_count')
        self.posts_ref.document(new_post.post_id).set(DateTimeUtils.for_firestore(data))
        logging.info(f"게시물 생성 완료 (post_id: {new_post.post_id}, user_id: {user_id})")
        return data

    def get_posts(self, search: Optional[str] = None) -> List[Dict[str, Any]]:
        """피드 게시물을 최신순으로 조회합니다. search가 있으면 본문에 포함된 것만 남깁니다."""
        query = self.posts_ref.order_by("created_at", direction=firestore.Query.DESCENDING)
        posts = [DateTimeUtils.from_firestore(doc.to_dict()) for doc in query.stream()]
        if search:
            keyword = search.lower()
            posts = [p for p in posts if keyword in (p.get('description') or '').lower()]
        return posts

    def get_user_posts(self, author_id: str) -> List[Dict[str, Any]]:
        """특정 사용자가 작성한 게시물을 최신순으로 조회합니다."""
        query = (self.posts_ref
                 .where('author.user_id', '==', author_id)
                 .order_by("created_at", direction=firestore.Query.DESCENDING))
        return [DateTimeUtils.from_firestore(doc.to_dict()) for doc in query.stream()]

    def toggle_post_like(self, user_id: str, post_id: str) -> List[str]:
        """게시물 좋아요를 누르거나 취소하고, 변경된 좋아요 목록을 반환합니다."""
        transaction = self.db.transaction()

        @firestore.transactional
        def _toggle_in_transaction(transaction, user_id, post_id):
            post_ref = self.posts_ref.document(post_id)
            post_doc = post_ref.get(transaction=transaction)
            if not post_doc.exists:
                raise ValueError("게시물을 찾을 수 없습니다.")

            likes = toggle_liker(post_doc.to_dict().get('likes', []), user_id)
            transaction.update(post_ref, {'likes': likes})
            return likes

        return _toggle_in_transaction(transaction, user_id, post_id)

    def delete_post(self, post_id: str, user_id: str) -> None:
        """게시물과 그 댓글을 삭제합니다. (작성자 본인만 가능)"""
        post_ref = self.posts_ref.document(post_id)
        doc = post_ref.get()
        if not doc.exists:
            raise ValueError("삭제할 게시물이 없습니다.")
        if doc.to_dict().get('author', {}).get('user_id') != user_id:
            raise PermissionError("게시물을 삭제할 권한이 없습니다.")

        batch = self.db.batch()
        for comment_doc in self.comments_ref.where('post_id', '==', post_id).stream():
            batch.delete(comment_doc.reference)
        batch.delete(post_ref)
        batch.commit()
        logging.info(f"게시물 삭제 완료 (post_id: {post_id})")

    # --- 댓글 / 답글 ---

    def get_comments(self, post_id: str) -> List[Dict[str, Any]]:
        """게시물의 댓글을 작성순으로 조회합니다. 답글은 각 댓글 안에 포함됩니다."""
        query = self.comments_ref.where('post_id', '==', post_id).order_by("created_at")
        return [DateTimeUtils.from_firestore(doc.to_dict()) for doc in query.stream()]

    def create_comment(self, post_id: str, user_id: str, text: str,
                       from_name: Optional[str] = None, reply_at: Optional[str] = None) -> Dict[str, Any]:
        """게시물에 새 최상위 댓글을 작성합니다."""
        if not self.posts_ref.document(post_id).get().exists:
            raise ValueError("댓글을 작성할 게시물이 존재하지 않습니다.")

        new_comment = Comment(
            comment_id=str(uuid.uuid4()),
            post_id=post_id,
            author=self._author_snapshot(user_id, from_name),
            comment=text,
            reply_at=reply_at,
            created_at=DateTimeUtils.now(),
        )
        data = asdict(new_comment)
        self.comments_ref.document(new_comment.comment_id).set(DateTimeUtils.for_firestore(data))
        return data

    def create_reply(self, comment_id: str, user_id: str, text: str,
                     from_name: Optional[str] = None, reply_at: Optional[str] = None) -> Dict[str, Any]:
        """댓글에 답글을 추가합니다. 답글은 replies 배열 끝에 붙습니다."""
        author = self._author_snapshot(user_id, from_name)
        transaction = self.db.transaction()

        @firestore.transactional
        def _append_in_transaction(transaction, comment_id):
            comment_ref = self.comments_ref.document(comment_id)
            comment_doc = comment_ref.get(transaction=transaction)
            if not comment_doc.exists:
                raise ValueError("답글을 작성할 댓글이 존재하지 않습니다.")

            new_reply = Reply(
                reply_id=str(uuid.uuid4()),
                comment_id=comment_id,
                author=author,
                comment=text,
                reply_at=reply_at,
                created_at=DateTimeUtils.now(),
            )
            data = DateTimeUtils.for_firestore(asdict(new_reply))
            replies = comment_doc.to_dict().get('replies', [])
            transaction.update(comment_ref, {'replies': replies + [data]})
            return data

        return _append_in_transaction(transaction, comment_id)

    def toggle_comment_like(self, user_id: str, comment_id: str) -> List[str]:
        """댓글 좋아요를 누르거나 취소합니다."""
        transaction = self.db.transaction()

        @firestore.transactional
        def _toggle_in_transaction(transaction, user_id, comment_id):
            comment_ref = self.comments_ref.document(comment_id)
            comment_doc = comment_ref.get(transaction=transaction)
            if not comment_doc.exists:
                raise ValueError("좋아요를 누를 댓글을 찾을 수 없습니다.")

            likes = toggle_liker(comment_doc.to_dict().get('likes', []), user_id)
            transaction.update(comment_ref, {'likes': likes})
            return likes

        return _toggle_in_transaction(transaction, user_id, comment_id)

    def toggle_reply_like(self, user_id: str, comment_id: str, reply_id: str) -> List[str]:
        """답글 좋아요를 누르거나 취소합니다. 답글이 속한 댓글 문서 전체를 갱신합니다."""
        transaction = self.db.transaction()

        @firestore.transactional
        def _toggle_in_transaction(transaction, user_id, comment_id, reply_id):
            comment_ref = self.comments_ref.document(comment_id)
            comment_doc = comment_ref.get(transaction=transaction)
            if not comment_doc.exists:
                raise ValueError("좋아요를 누를 댓글을 찾을 수 없습니다.")

            replies = comment_doc.to_dict().get('replies', [])
            target = next((r for r in replies if r.get('reply_id') == reply_id), None)
            if target is None:
                raise ValueError("좋아요를 누를 답글을 찾을 수 없습니다.")

            target['likes'] = toggle_liker(target.get('likes', []), user_id)
            transaction.update(comment_ref, {'replies': replies})
            return target['likes']

        return _toggle_in_transaction(transaction, user_id, comment_id, reply_id)
