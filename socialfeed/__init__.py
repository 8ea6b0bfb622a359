# socialfeed/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import logging
from flask import Flask, jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
import firebase_admin
from firebase_admin import credentials

# - 설정
from socialfeed.core.config import config_by_name

# - API 블루프린트
from socialfeed.api.posts.routes import posts_bp

# - 서비스 모듈
from socialfeed.api.posts import services as post_service_module


def create_app(config_name=None, services=None):
    """
    Flask 애플리케이션 팩토리 함수.
    - services를 넘기면 Firebase 초기화를 건너뛰고 주어진 서비스를 그대로 주입합니다. (테스트용)
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. 확장 기능 및 외부 서비스 초기화
    # =====================================================================================
    JWTManager(app)

    if services is None and not firebase_admin._apps:
        cred_path = app.config.get('FIREBASE_CREDENTIALS_PATH')
        if not cred_path or not os.path.exists(cred_path):
            raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
        firebase_admin.initialize_app(credentials.Certificate(cred_path))

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    if services is None:
        services = {'posts': post_service_module.PostService()}
        logging.info("Post service initialized successfully")
    app.services = dict(services)

    # =====================================================================================
    # 6. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(posts_bp, url_prefix='/posts')

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"status": "failed", "message": "입력값이 올바르지 않습니다.", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # 404/405 같은 HTTP 예외는 Flask 기본 응답을 그대로 사용
        if isinstance(err, HTTPException):
            return err
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"status": "failed", "message": "서버 내부에서 예상치 못한 오류가 발생했습니다."}
        return jsonify(response), 500

    # =====================================================================================
    # 8. 로깅 및 앱 반환
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
