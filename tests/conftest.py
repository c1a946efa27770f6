"""Shared fixtures: an in-memory database per test and signed-in clients."""

import os
from datetime import datetime, timezone

# Configure the app before it is imported
os.environ['SECRET_KEY'] = 'test-secret-key'
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['RATELIMIT_ENABLED'] = '0'
for _key in ('RESEND_API_KEY', 'GEMINI_API_KEY', 'GOOGLE_GEMINI_API_KEY', 'CLOUDINARY_URL',
             'CLOUDINARY_CLOUD_NAME', 'CLERK_ISSUER', 'CLERK_SECRET_KEY', 'CRON_SECRET',
             'ADMIN_EMAILS', 'FLASK_DEBUG', 'FLASK_ENV'):
    os.environ.pop(_key, None)

import pytest

from app import app as flask_app
from models import db, seed_all, Activity
from profiles import ensure_user_profile


@pytest.fixture
def app():
    flask_app.config.update(TESTING=True, WTF_CSRF_ENABLED=False)
    with flask_app.app_context():
        db.create_all()
        seed_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_profile(app):
    """Create profiles on demand: make_profile('user_a', email=..., balance=...)."""
    def _make(user_id='user_test', email='test@example.com', username='Tester', **fields):
        profile, _ = ensure_user_profile(user_id, email, username)
        for key, value in fields.items():
            setattr(profile, key, value)
        db.session.commit()
        return profile
    return _make


@pytest.fixture
def profile(make_profile):
    return make_profile()


@pytest.fixture
def auth_client(client, profile):
    with client.session_transaction() as sess:
        sess['user_id'] = profile.id
        sess['email'] = profile.email
        sess['timezone'] = 'UTC'
    return client


@pytest.fixture
def add_activity(app):
    """Insert an activity row; created at noon UTC unless told otherwise."""
    def _add(user_id, log_date, impact, category='travel', type='calculator', details=None,
             created_at=None, description='Test activity'):
        activity = Activity(
            user_id=user_id, type=type, category=category, description=description,
            impact=impact, details=details, log_date=log_date,
            created_at=created_at or datetime(log_date.year, log_date.month, log_date.day, 12,
                                              tzinfo=timezone.utc),
        )
        db.session.add(activity)
        db.session.commit()
        return activity
    return _add
