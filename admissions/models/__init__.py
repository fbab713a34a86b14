"""
Admissions Portal — Model Package.

The shared ``db`` extension lives here so that models, services and
blueprints import it from one place:

    from admissions.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
