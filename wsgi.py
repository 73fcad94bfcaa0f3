"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi run
    flask --app wsgi db upgrade
    flask --app wsgi create-admin --email admin@example.com --name Admin
    gunicorn wsgi:app
"""

from app import create_app

app = create_app()
