# socialfeed/api/posts/routes.py
import logging
from flask import Blueprint, request, jsonify, Response, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from socialfeed.api.posts.schemas import (
    PostCreateSchema, CommentCreateSchema, PostResponseSchema, CommentResponseSchema
)


posts_bp = Blueprint('posts_bp', __name__)


def _success(message: str, data=None, status: int = 200):
    body = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def _failed(message: str, status: int, details=None):
    body = {"status": "failed", "message": message}
    if details is not None:
        body["details"] = details
    return jsonify(body), status


@posts_bp.route('', methods=['POST'])
@jwt_required()
def get_posts():
    """
    피드 게시물 목록을 최신순으로 조회합니다.
    - 요청 본문에 search가 있으면 본문 검색 결과만 반환합니다.
    """
    post_service = current_app.services['posts']
    search = (request.get_json(silent=True) or {}).get('search')
    try:
        posts = post_service.get_posts(search)
        return _success("게시물 목록을 불러왔습니다.", PostResponseSchema(many=True).dump(posts))
    except Exception as e:
        logging.error(f"게시물 목록 조회 중 오류 발생: {e}", exc_info=True)
        return _failed("게시물 목록 조회 중 오류가 발생했습니다.", 500)


@posts_bp.route('/get-user-post/<string:user_id>', methods=['POST'])
@jwt_required()
def get_user_posts(user_id: str):
    """특정 사용자가 작성한 게시물 목록을 조회합니다. (프로필 화면)"""
    post_service = current_app.services['posts']
    try:
        posts = post_service.get_user_posts(user_id)
        return _success("사용자 게시물을 불러왔습니다.", PostResponseSchema(many=True).dump(posts))
    except Exception as e:
        logging.error(f"사용자 게시물 조회 중 오류 발생 (user_id: {user_id}): {e}", exc_info=True)
        return _failed("게시물 목록 조회 중 오류가 발생했습니다.", 500)


@posts_bp.route('/create-post', methods=['POST'])
@jwt_required()
def create_post():
    """새 게시물을 작성합니다. 이미지는 업로드가 끝난 URL만 받습니다."""
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()
    try:
        data = PostCreateSchema().load(request.get_json(silent=True) or {})
        new_post = post_service.create_post(user_id, data['description'], data['image'])
        return _success("게시물이 등록되었습니다.", PostResponseSchema().dump(new_post), 201)
    except ValidationError as err:
        return _failed("입력값이 올바르지 않습니다.", 400, err.messages)
    except ValueError as e:
        return _failed(str(e), 404)


@posts_bp.route('/like/<string:post_id>', methods=['POST'])
@jwt_required()
def toggle_post_like(post_id: str):
    """게시물 좋아요를 누르거나 취소하고, 변경된 좋아요 목록을 반환합니다."""
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()
    try:
        likes = post_service.toggle_post_like(user_id, post_id)
        return _success("좋아요 상태가 변경되었습니다.", {"likes": likes})
    except ValueError as e:
        return _failed(str(e), 404)


@posts_bp.route('/<string:post_id>', methods=['DELETE'])
@jwt_required()
def delete_post(post_id: str):
    """게시물을 삭제합니다. (작성자 본인만 가능)"""
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()
    try:
        post_service.delete_post(post_id, user_id)
        return Response(status=204)
    except PermissionError as e:
        return _failed(str(e), 403)
    except ValueError as e:
        return _failed(str(e), 404)


@posts_bp.route('/comments/<string:post_id>', methods=['GET'])
@jwt_required(optional=True)
def get_comments(post_id: str):
    """게시물의 댓글 목록을 답글과 함께 조회합니다."""
    post_service = current_app.services['posts']
    try:
        comments = post_service.get_comments(post_id)
        return _success("댓글 목록을 불러왔습니다.", CommentResponseSchema(many=True).dump(comments))
    except Exception as e:
        logging.error(f"댓글 목록 조회 중 오류 발생 (post_id: {post_id}): {e}", exc_info=True)
        return _failed("댓글 목록 조회 중 오류가 발생했습니다.", 500)


@posts_bp.route('/comment/<string:post_id>', methods=['POST'])
@jwt_required()
def create_comment(post_id: str):
    """게시물에 새 댓글을 작성합니다."""
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()
    try:
        data = CommentCreateSchema().load(request.get_json(silent=True) or {})
        post_service.create_comment(post_id, user_id, data['comment'], data['from_name'], data['reply_at'])
        return _success("댓글이 등록되었습니다.", status=201)
    except ValidationError as err:
        return _failed("댓글 내용을 확인해주세요.", 400, err.messages)
    except ValueError as e:
        return _failed(str(e), 404)


@posts_bp.route('/reply-comment/<string:comment_id>', methods=['POST'])
@jwt_required()
def create_reply(comment_id: str):
    """댓글에 답글을 작성합니다. 경로의 id는 게시물이 아닌 부모 댓글의 id입니다."""
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()
    try:
        data = CommentCreateSchema().load(request.get_json(silent=True) or {})
        post_service.create_reply(comment_id, user_id, data['comment'], data['from_name'], data['reply_at'])
        return _success("답글이 등록되었습니다.", status=201)
    except ValidationError as err:
        return _failed("답글 내용을 확인해주세요.", 400, err.messages)
    except ValueError as e:
        return _failed(str(e), 404)


@posts_bp.route('/like-comment/<string:comment_id>', methods=['POST'])
@jwt_required()
def toggle_comment_like(comment_id: str):
    """댓글 좋아요를 누르거나 취소합니다."""
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()
    try:
        post_service.toggle_comment_like(user_id, comment_id)
        return _success("좋아요 상태가 변경되었습니다.")
    except ValueError as e:
        return _failed(str(e), 404)


@posts_bp.route('/like-comment/<string:comment_id>/<string:reply_id>', methods=['POST'])
@jwt_required()
def toggle_reply_like(comment_id: str, reply_id: str):
    """답글 좋아요를 누르거나 취소합니다."""
    post_service = current_app.services['posts']
    user_id = get_jwt_identity()
    try:
        post_service.toggle_reply_like(user_id, comment_id, reply_id)
        return _success("좋아요 상태가 변경되었습니다.")
    except ValueError as e:
        return _failed(str(e), 404)
