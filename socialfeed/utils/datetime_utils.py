# socialfeed/utils/datetime_utils.py
"""
프로젝트 전체에서 일관된 시간 처리를 위한 유틸리티 모듈

- 서버는 모든 시간을 UTC timezone-aware datetime으로 저장합니다.
- API 응답의 ISO 문자열을 파싱/생성할 때 같은 규칙을 사용합니다.
- Firestore 저장/조회 시 변환을 한 곳에서 처리합니다.
"""

import logging
from datetime import datetime, date, timezone, time
from typing import Any
from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)


class DateTimeUtils:
    """시간/날짜 처리를 위한 중앙화된 유틸리티 클래스"""

    @staticmethod
    def now() -> datetime:
        """현재 시간을 UTC timezone-aware datetime으로 반환"""
        return datetime.now(timezone.utc)

    @staticmethod
    def parse_iso_datetime(iso_string: str) -> datetime:
        """
        ISO 포맷 문자열을 datetime 객체로 파싱

        지원 포맷:
        - 2024-01-15T10:30:00Z
        - 2024-01-15T10:30:00+09:00
        - 2024-01-15T10:30:00.123456Z
        - 2024-01-15T10:30:00
        """
        try:
            if not iso_string:
                raise ValueError("빈 문자열은 파싱할 수 없습니다")

            if iso_string.endswith('Z'):
                iso_string = iso_string[:-1] + '+00:00'

            dt = dateutil_parser.isoparse(iso_string)

            # timezone-naive인 경우 UTC로 가정
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)

            return dt.astimezone(timezone.utc)

        except Exception as e:
            logger.error(f"ISO datetime 파싱 실패: {iso_string} - {e}")
            raise ValueError(f"잘못된 ISO 날짜 형식입니다: {iso_string}")

    @staticmethod
    def to_iso_string(dt: datetime) -> str:
        """datetime 객체를 ISO 포맷 문자열로 변환 (Z 접미사)"""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        else:
            dt = dt.astimezone(timezone.utc)
        return dt.isoformat().replace('+00:00', 'Z')

    @staticmethod
    def for_firestore(obj: Any) -> Any:
        """
        Firestore 저장을 위해 객체의 날짜/시간 필드를 변환

        변환 규칙:
        - date -> datetime (00:00:00 UTC)
        - timezone-naive datetime -> timezone-aware datetime (UTC)
        - dict/list 내부 재귀적 변환
        """
        if isinstance(obj, date) and not isinstance(obj, datetime):
            return datetime.combine(obj, time.min).replace(tzinfo=timezone.utc)
        elif isinstance(obj, datetime):
            if obj.tzinfo is None:
                return obj.replace(tzinfo=timezone.utc)
            return obj.astimezone(timezone.utc)
        elif isinstance(obj, dict):
            return {k: DateTimeUtils.for_firestore(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [DateTimeUtils.for_firestore(item) for item in obj]
        return obj

    @staticmethod
    def from_firestore(obj: Any) -> Any:
        """
        Firestore에서 읽은 데이터의 datetime 필드를 UTC datetime으로 맞춥니다.
        변환에 실패하면 원본을 그대로 돌려주고 로그만 남깁니다.
        """
        try:
            if isinstance(obj, datetime):
                if obj.tzinfo is None:
                    return obj.replace(tzinfo=timezone.utc)
                return obj.astimezone(timezone.utc)
            elif isinstance(obj, dict):
                return {k: DateTimeUtils.from_firestore(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [DateTimeUtils.from_firestore(item) for item in obj]
            return obj

        except Exception as e:
            logger.error(f"Firestore 읽기 변환 실패: {obj} ({type(obj)}) - {e}")
            return obj


# 편의를 위한 모듈 레벨 함수들
def now() -> datetime:
    return DateTimeUtils.now()

def parse_iso(iso_string: str) -> datetime:
    return DateTimeUtils.parse_iso_datetime(iso_string)

def to_iso(dt: datetime) -> str:
    return DateTimeUtils.to_iso_string(dt)
