# socialfeed/core/config.py

import os


class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # JWT 토큰 서명 키. 토큰 발급은 인증 서비스가 담당하고 여기서는 검증만 합니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')

    # --- 피드 동기화 클라이언트 설정 ---
    # 백엔드 API 주소
    FEED_API_URL = os.getenv('FEED_API_URL', 'http://localhost:8800')
    # 요청 하나당 타임아웃(초)
    FEED_API_TIMEOUT = float(os.getenv('FEED_API_TIMEOUT', '10'))
    # dispatch_async가 사용하는 워커 스레드 수
    FEED_DISPATCH_WORKERS = int(os.getenv('FEED_DISPATCH_WORKERS', '4'))


class DevelopmentConfig(Config):
    """개발 환경을 위한 설정 클래스입니다."""
    DEBUG = True
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH')


class ProductionConfig(Config):
    """운영 환경 설정. 디버그 모드를 끄고 운영용 Firebase 키를 사용합니다."""
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')


class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다."""
    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'socialfeed-test-secret-key-0123456789')
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')


# FLASK_ENV 값에 따라 create_app에서 설정 클래스를 고릅니다.
config_by_name = dict(
    development=DevelopmentConfig,
    production=ProductionConfig,
    testing=TestingConfig
)
