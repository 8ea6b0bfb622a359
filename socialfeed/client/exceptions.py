# socialfeed/client/exceptions.py
from typing import Optional


class ApiError(Exception):
    """
    피드 클라이언트 예외의 최상위 클래스
    - 조회기(CommentTreeFetcher)와 디스패처(MutationDispatcher) 경계에서 잡혀 처리됩니다.
    """
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TransportError(ApiError):
    """연결 실패, 타임아웃, JSON이 아닌 응답 등 네트워크 계층 오류"""
    pass


class ApiRequestError(ApiError):
    """서버가 실패를 알린 경우 (4xx/5xx 또는 status: "failed")"""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
