from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from datetime import timedelta
from typing import Optional, Dict, Any
import os

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///portal.db')
    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = timedelta(hours=int(os.getenv('JWT_ACCESS_TOKEN_HOURS', '24')))

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)
    _register_jwt_callbacks()

    from .routes.auth import auth_bp
    from .routes.users import users_bp
    from .routes.roles import roles_bp
    from .routes.products import products_bp
    from .routes.orders import orders_bp
    from .routes.meetings import meetings_bp
    from .routes.market_research import market_bp
    from .routes.payments import payments_bp
    from .routes.customer import customer_bp
    from .routes.dashboard import dashboard_bp
    from .routes.news import news_bp
    from .routes.invoice_delivery import invoice_delivery_bp
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(users_bp, url_prefix='/users')
    app.register_blueprint(roles_bp, url_prefix='/roles')
    app.register_blueprint(products_bp, url_prefix='/products')
    app.register_blueprint(orders_bp, url_prefix='/orders')
    app.register_blueprint(meetings_bp, url_prefix='/meetings')
    app.register_blueprint(market_bp, url_prefix='/market-research')
    app.register_blueprint(payments_bp, url_prefix='/payments')
    app.register_blueprint(customer_bp, url_prefix='/customer')
    app.register_blueprint(dashboard_bp, url_prefix='/dashboard')
    app.register_blueprint(news_bp, url_prefix='/news')
    app.register_blueprint(invoice_delivery_bp, url_prefix='/invoice-to-delivery')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    @app.teardown_appcontext
    def release_session(exc):  # type: ignore
        # Fresh identity map per request so role edits are never read stale
        if SessionLocal is not None:
            SessionLocal.remove()

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            return error_payload(e.code, e.name, e.description, getattr(e, 'kind', None)), e.code
        app.logger.exception('Unhandled exception')
        return error_payload(500, 'Internal Server Error', 'Unexpected error'), 500

    return app


def error_payload(status: int, title: str, detail: str, kind: Optional[str] = None):
    body = {'status': status, 'title': title, 'detail': detail}
    if kind:
        body['kind'] = kind
    return {'error': body}


def _register_jwt_callbacks():
    # Token problems share the Unauthenticated error shape
    @jwt.unauthorized_loader
    def missing_token(reason):  # type: ignore
        return error_payload(401, 'Unauthorized', 'Authentication required', 'UNAUTHENTICATED'), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):  # type: ignore
        return error_payload(401, 'Unauthorized', f'Invalid token: {reason}', 'UNAUTHENTICATED'), 401

    @jwt.expired_token_loader
    def expired_token(header, payload):  # type: ignore
        return error_payload(401, 'Unauthorized', 'Token has expired', 'UNAUTHENTICATED'), 401


def get_db():
    return SessionLocal()
