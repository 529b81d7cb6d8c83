import logging
import os

import click
from flask import Flask, jsonify
from flask_migrate import Migrate
from werkzeug.security import generate_password_hash

from config import ProductionConfig, DevelopmentConfig, TestingConfig
from error_handler import register_error_handlers

# Import extensions to avoid circular imports
from extensions import db, login_manager, csrf
from models import User, ROLES


def configure_logging(app):
    """Apply LOG_LEVEL to the app logger and the module loggers under it."""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=level,
            format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
        )
    app.logger.setLevel(level)
    for name in ('services', 'error_handler'):
        logging.getLogger(name).setLevel(level)


def register_commands(app):
    """Flask CLI helpers for bootstrapping a deployment."""

    @app.cli.command('create-user')
    @click.argument('username')
    @click.argument('full_name')
    @click.option('--role', type=click.Choice(ROLES), default='admin')
    @click.option('--telegram-id', default=None)
    @click.password_option()
    def create_user(username, full_name, role, telegram_id, password):
        """Create a login account."""
        if User.query.filter_by(username=username).first():
            raise click.ClickException(f"User {username} already exists")
        user = User(
            username=username,
            full_name=full_name,
            role=role,
            telegram_id=telegram_id,
            password_hash=generate_password_hash(password),
        )
        db.session.add(user)
        db.session.commit()
        click.echo(f"Created {role} {username} (id {user.id})")


def create_app(config_class=None):
    """
    Factory function to create the Flask application.
    Automatically selects configuration based on environment.
    """
    if config_class is None:
        env = os.environ.get('FLASK_ENV', 'production').lower()
        if env == 'development':
            config_class = DevelopmentConfig
        elif env == 'testing':
            config_class = TestingConfig
        else:
            config_class = ProductionConfig  # Default to production for security

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)
    os.makedirs(app.instance_path, exist_ok=True)
    configure_logging(app)

    # Initialize extensions with the app
    db.init_app(app)
    Migrate(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)

    with app.app_context():
        try:
            db.create_all()
            app.logger.debug("Database tables created successfully")
        except Exception as e:
            app.logger.error(f"FATAL DATABASE ERROR DURING INITIALIZATION: {e}")
            raise

    # User loader function for Flask-Login
    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    from api_routes import api_blueprint
    app.register_blueprint(api_blueprint, url_prefix='/api')

    register_error_handlers(app)
    register_commands(app)

    @app.route('/')
    def home():
        return jsonify({
            'message': 'Badge service ready',
            'endpoints': {
                'badges': '/api/badges',
                'daily-badges': '/api/daily-badges',
                'notifications': '/api/notifications',
                'bot': '/api/bot',
            },
        })

    return app
