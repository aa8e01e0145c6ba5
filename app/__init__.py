from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate

from app.config import Config

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    from app.services import cache as cache_service
    cache_service.init_app(app)

    from app.errors import register_error_handlers
    register_error_handlers(app)

    # Register blueprints
    from app.routes.auth import bp as auth_bp
    from app.routes.books import bp as books_bp
    from app.routes.book_copies import bp as book_copies_bp
    from app.routes.reservations import bp as reservations_bp
    from app.routes.dashboard import bp as dashboard_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(books_bp, url_prefix="/api/v1/books")
    app.register_blueprint(book_copies_bp, url_prefix="/api/v1")
    app.register_blueprint(reservations_bp, url_prefix="/api/v1/reservations")
    app.register_blueprint(dashboard_bp, url_prefix="/api/v1/dashboard")

    # Make sure every model is mapped before the first request
    with app.app_context():
        from app.models import User, Book, BookCopy, Reservation  # noqa: F401

    return app
