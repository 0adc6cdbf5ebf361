"""
Flask extension singletons.

Bound to the app in create_app(). The database only backs the department
catalog and the write audit log; ledger data is never stored here.
"""

from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
migrate = Migrate()
