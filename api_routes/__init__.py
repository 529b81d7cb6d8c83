"""
API Routes Package

JSON endpoints for the dashboard and the Telegram bot, one module per
functional area, all mounted under the api blueprint.
"""

from flask import Blueprint

# Create the main api blueprint
api_blueprint = Blueprint('api', __name__)

# Import all route modules to register their routes
from . import (
    auth,
    badges,
    daily_badges,
    notifications,
    bot,
)

# Register all blueprints with the main api blueprint
api_blueprint.register_blueprint(auth.bp, url_prefix='')
api_blueprint.register_blueprint(badges.bp, url_prefix='')
api_blueprint.register_blueprint(daily_badges.bp, url_prefix='')
api_blueprint.register_blueprint(notifications.bp, url_prefix='')
api_blueprint.register_blueprint(bot.bp, url_prefix='/bot')
