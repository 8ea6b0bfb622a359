# socialfeed/client/api_client.py
import logging
from typing import Optional, Dict, Any

import requests

from socialfeed.core.config import Config
from socialfeed.client.exceptions import TransportError, ApiRequestError

logger = logging.getLogger(__name__)


class ApiClient:
    """
    피드 백엔드와 통신하는 HTTP 클라이언트.
    - 모든 요청에 Bearer 토큰과 no-cache 헤더를 붙입니다.
    - 네트워크 오류는 TransportError, 서버가 알린 실패는 ApiRequestError로 올립니다.
    """
    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None,
                 timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        self.base_url = (base_url or Config.FEED_API_URL).rstrip('/')
        self.token = token
        self.timeout = timeout if timeout is not None else Config.FEED_API_TIMEOUT
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config, token: Optional[str] = None) -> "ApiClient":
        """Flask 설정 클래스(또는 app.config 딕셔너리)에서 클라이언트를 만듭니다."""
        get = config.get if isinstance(config, dict) else (lambda key: getattr(config, key, None))
        return cls(base_url=get('FEED_API_URL'), token=token, timeout=get('FEED_API_TIMEOUT'))

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.token}" if self.token else "",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }

    def request(self, url: str, method: str = "GET", data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """요청을 보내고 파싱된 JSON 본문을 반환합니다. 본문이 없으면 빈 dict를 반환합니다."""
        full_url = f"{self.base_url}{url}"
        try:
            response = self.session.request(
                method, full_url, json=data, headers=self._headers(), timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.warning(f"API 요청 전송 실패 ({method} {url}): {e}")
            raise TransportError(f"서버에 연결할 수 없습니다: {e}") from e

        body: Any = {}
        if response.status_code != 204 and response.content:
            try:
                body = response.json()
            except ValueError as e:
                if response.ok:
                    raise TransportError(f"JSON 응답이 아닙니다 ({method} {url})") from e
                body = {}

        if not isinstance(body, dict):
            body = {"data": body}

        if not response.ok or body.get("status") == "failed":
            message = body.get("message") or f"요청이 실패했습니다 (HTTP {response.status_code})"
            logger.warning(f"API 요청 실패 ({method} {url}, status: {response.status_code}): {message}")
            raise ApiRequestError(message, response.status_code)

        return body

    def get(self, url: str) -> Dict[str, Any]:
        return self.request(url, "GET")

    def post(self, url: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        # 서버가 본문 없는 POST를 거부하지 않도록 빈 객체를 보냅니다.
        return self.request(url, "POST", data if data is not None else {})

    def delete(self, url: str) -> Dict[str, Any]:
        return self.request(url, "DELETE")
