"""One-time database initialization for production.
Run with: python init_db.py
Run before gunicorn starts; Flask-Migrate handles later schema changes.
"""
from app import app
from models import db, seed_all

with app.app_context():
    db.create_all()
    seed_all()
    print("Database tables created and badges, rewards and eco tips seeded.")
