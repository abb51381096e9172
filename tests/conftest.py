"""Shared fixtures: an in-memory database, anonymous/admin/agent clients and model factories."""
import os

import pytest
from flask import g, request_started

# Configuration is read when app.py is imported
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['ADMIN_PASSWORD'] = 'test-password'
os.environ['SESSION_SECRET'] = 'test-secret'
os.environ['CRON_SECRET'] = 'cron-secret'
os.environ['PORTFOLIO_API_KEY'] = 'agent-key'
os.environ['OPENROUTER_API_KEY'] = 'openrouter-key'
os.environ.pop('DATABASE_AUTH_TOKEN', None)
os.environ.pop('TELEGRAM_BOT_TOKEN', None)
os.environ.pop('TELEGRAM_CHAT_ID', None)

from app import app as flask_app  # noqa: E402
from models import db, Project, CrmTask, ContactSubmission  # noqa: E402

ADMIN_PASSWORD = 'test-password'
AGENT_KEY = 'agent-key'


def reset_login_user(sender, **extra):
    # Requests reuse the fixture's app context, so drop Flask-Login's cached user
    g.pop('_login_user', None)


@pytest.fixture
def app():
    flask_app.config['TESTING'] = True
    with flask_app.app_context(), request_started.connected_to(reset_login_user, flask_app):
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app):
    client = app.test_client()
    response = client.post('/api/admin/auth', json={'password': ADMIN_PASSWORD})
    assert response.status_code == 200
    return client


@pytest.fixture
def agent_headers():
    return {'Authorization': f'Bearer {AGENT_KEY}'}


@pytest.fixture
def make_project(app):
    def factory(slug='demo', **fields):
        fields.setdefault('title', slug.replace('-', ' ').title())
        project = Project(slug=slug, **fields)
        db.session.add(project)
        db.session.commit()
        return project
    return factory


@pytest.fixture
def make_task(app):
    def factory(project, title='Task', **fields):
        task = CrmTask(project_id=project.id, title=title, **fields)
        db.session.add(task)
        db.session.commit()
        return task
    return factory


@pytest.fixture
def make_lead(app):
    def factory(email='lead@example.com', subject='Website', message='Hello', **fields):
        lead = ContactSubmission(email=email, subject=subject, message=message, **fields)
        db.session.add(lead)
        db.session.commit()
        return lead
    return factory
