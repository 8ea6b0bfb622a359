# socialfeed/api/posts/schemas.py
from marshmallow import Schema, fields, validate, ValidationError, EXCLUDE, pre_load, post_load

from socialfeed.models.post import AuthorSnapshot, Post
from socialfeed.models.comment import Comment, Reply
from socialfeed.utils.datetime_utils import parse_iso


def not_blank(value: str):
    """공백만 있는 문자열을 거부합니다."""
    if not value or not value.strip():
        raise ValidationError("내용을 입력해주세요.")


class UtcDateTime(fields.DateTime):
    """ISO 문자열을 UTC timezone-aware datetime으로 읽습니다. 오프셋이 없으면 UTC로 간주합니다."""
    def _deserialize(self, value, attr, data, **kwargs):
        try:
            return parse_iso(value)
        except ValueError as error:
            raise self.make_error("invalid", input=value, obj_type=self.OBJ_TYPE) from error


# --- 재사용을 위한 중첩 스키마 ---
class AuthorSchema(Schema):
    """게시물/댓글/답글 응답에 포함될 작성자 스냅샷 스키마."""
    class Meta:
        unknown = EXCLUDE

    user_id = fields.Str(required=True)
    name = fields.Str(required=True)
    profile_url = fields.Str(allow_none=True, load_default=None)

    @post_load
    def make_author(self, data, **kwargs):
        return AuthorSnapshot(**data)


# --- API 요청 스키마 ---

class PostCreateSchema(Schema):
    """POST /posts/create-post 요청 본문의 유효성을 검사합니다."""
    description = fields.Str(required=True, validate=[validate.Length(min=1, max=2000), not_blank])
    image = fields.Str(allow_none=True, load_default=None)


class CommentCreateSchema(Schema):
    """
    POST /posts/comment/{post_id}, POST /posts/reply-comment/{comment_id}
    댓글과 답글 작성 요청의 공통 형식입니다. 클라이언트도 전송 전에 같은 스키마로 검사합니다.
    """
    comment = fields.Str(
        required=True,
        validate=[validate.Length(min=1, max=1000, error="댓글은 1~1000자 사이여야 합니다."), not_blank],
        error_messages={"required": "댓글 내용을 입력해주세요."},
    )
    from_name = fields.Str(data_key="from", allow_none=True, load_default=None)
    reply_at = fields.Str(data_key="replyAt", allow_none=True, load_default=None)


# --- API 응답 스키마 ---

class PostResponseSchema(Schema):
    """게시물 응답 JSON 형식. 클라이언트에서는 load 결과로 Post 객체를 만듭니다."""
    class Meta:
        unknown = EXCLUDE

    post_id = fields.Str(required=True)
    author = fields.Nested(AuthorSchema, required=True)
    description = fields.Str(load_default="")
    image = fields.Str(allow_none=True, load_default=None)
    likes = fields.List(fields.Str(), load_default=list)
    created_at = UtcDateTime(required=True)
    comment_count = fields.Int(allow_none=True, load_default=None)

    @post_load
    def make_post(self, data, **kwargs):
        return Post(**data)


class ReplyResponseSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    reply_id = fields.Str(required=True)
    comment_id = fields.Str(required=True)
    author = fields.Nested(AuthorSchema, required=True)
    comment = fields.Str(required=True)
    reply_at = fields.Str(data_key="replyAt", allow_none=True, load_default=None)
    likes = fields.List(fields.Str(), load_default=list)
    created_at = UtcDateTime(required=True)

    @post_load
    def make_reply(self, data, **kwargs):
        return Reply(**data)


class CommentResponseSchema(Schema):
    """
    댓글 응답 JSON 형식. 답글은 댓글 안에 중첩되어 한 번에 내려갑니다.
    """
    class Meta:
        unknown = EXCLUDE

    comment_id = fields.Str(required=True)
    post_id = fields.Str(required=True)
    author = fields.Nested(AuthorSchema, required=True)
    comment = fields.Str(required=True)
    reply_at = fields.Str(data_key="replyAt", allow_none=True, load_default=None)
    likes = fields.List(fields.Str(), load_default=list)
    replies = fields.List(fields.Nested(ReplyResponseSchema), load_default=list)
    created_at = UtcDateTime(required=True)

    @pre_load
    def attach_parent_to_replies(self, data, **kwargs):
        # 답글 payload에 comment_id가 빠져 있으면 감싸고 있는 댓글의 id를 채웁니다.
        if not isinstance(data, dict) or not isinstance(data.get("replies"), list):
            return data
        parent_id = data.get("comment_id")
        data = dict(data)
        data["replies"] = [
            {**reply, "comment_id": reply.get("comment_id") or parent_id} if isinstance(reply, dict) else reply
            for reply in data["replies"]
        ]
        return data

    @post_load
    def make_comment(self, data, **kwargs):
        return Comment(**data)


class LikesResponseSchema(Schema):
    """POST /posts/like/{post_id} 응답의 data 부분."""
    class Meta:
        unknown = EXCLUDE

    likes = fields.List(fields.Str(), required=True)
