from pathlib import Path
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_bcrypt import Bcrypt
from flask_mail import Mail
from byod_asset_manager.config import Config
from byod_asset_manager.logging_config import setup_logging

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
mail = Mail()

def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    uri = app.config.get('SQLALCHEMY_DATABASE_URI', '')
    if uri.startswith('sqlite:///'):
        Path(uri[len('sqlite:///'):]).parent.mkdir(parents=True, exist_ok=True)

    if not app.config.get('TESTING'):
        setup_logging(app.config.get('LOG_LEVEL', 'INFO'), app.config.get('LOG_DIR'))

    db.init_app(app)
    bcrypt.init_app(app)
    login_manager.init_app(app)
    mail.init_app(app)

    from byod_asset_manager.models.user import User

    @login_manager.user_loader
    def load_user(user_id):
        user = db.session.get(User, int(user_id))
        if user is None or not user.is_active_account:
            return None
        return user

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required', 'status': 401}), 401

    from byod_asset_manager.errors import register_error_handlers
    register_error_handlers(app)

    with app.app_context():
        @app.route('/')
        def index():
            return jsonify({'service': 'byod-asset-manager', 'status': 'ok'})

        # Import blueprints inside context
        from byod_asset_manager.routes import (assets_bp, employees_bp, byod_bp, services_bp,
                                               users_bp, settings_bp, audit_bp)

        # Register blueprints
        app.register_blueprint(assets_bp)
        app.register_blueprint(employees_bp)
        app.register_blueprint(byod_bp)
        app.register_blueprint(services_bp)
        app.register_blueprint(users_bp)
        app.register_blueprint(settings_bp)
        app.register_blueprint(audit_bp)

        # Mapper listeners guarding immutable records
        from byod_asset_manager.models import immutability
        immutability.register()

        # Create all database tables
        db.create_all()

        # Seed the runtime settings row
        from byod_asset_manager.services.settings import get_settings
        from byod_asset_manager.store import EntityStore
        store = EntityStore()
        with store.unit_of_work():
            get_settings(store)

    return app
