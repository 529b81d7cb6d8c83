#!/usr/bin/env python3
"""
WSGI entry point for the badge service.
This file is used by Gunicorn and other WSGI servers to run the application.
"""

from app import create_app

# Create the application instance
app = create_app()

# This is the WSGI application object that Gunicorn will use
application = app

if __name__ == "__main__":
    # The debug setting is controlled from config.py
    app.run(debug=app.config.get('DEBUG', False))
