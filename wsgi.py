"""WSGI entry point: ``gunicorn wsgi:app``."""

from admissions import create_app

app = create_app()
