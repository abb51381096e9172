from datetime import datetime
from unittest.mock import patch

import pytest

import seed
from models import db, Article, ContactSubmission, CrmTask, SiteSetting


@pytest.fixture
def seeded(app):
    seed.load()


@pytest.mark.parametrize('path', ['/', '/about', '/services', '/projects', '/projects?category=telegram',
                                  '/blog', '/contact'])
def test_public_pages_render(client, seeded, path):
    response = client.get(path)
    assert response.status_code == 200
    assert b'tracker.js' in response.data


def test_home_page_shows_settings_and_featured_projects(client, seeded):
    db.session.add(SiteSetting(key='footer_tagline', value='Made with care'))
    db.session.commit()
    html = client.get('/').get_data(as_text=True)
    assert 'Software Architect' in html
    assert 'Portfolio Console' in html
    assert 'Made with care' in html
    assert 'GitHub' in html


def test_project_page(client, seeded):
    html = client.get('/projects/lead-alert-bot').get_data(as_text=True)
    assert 'Lead Alert Bot' in html
    assert 'Overdue task digest' in html


def test_missing_pages_return_404(client, seeded):
    assert client.get('/projects/nope').status_code == 404
    assert client.get('/blog/nope').status_code == 404
    response = client.get('/definitely/not/here')
    assert response.status_code == 404
    assert b'does not exist' in response.data
    assert client.get('/api/nothing').get_json() == {'error': 'Not found'}


def test_draft_articles_are_hidden(client):
    db.session.add_all([
        Article(title='Live', slug='live', status='PUBLISHED', published_at=datetime(2026, 1, 1)),
        Article(title='Draft', slug='draft'),
    ])
    db.session.commit()
    html = client.get('/blog').get_data(as_text=True)
    assert 'Live' in html
    assert 'Draft' not in html
    assert client.get('/blog/draft').status_code == 404


@pytest.mark.parametrize('path', [
    '/admin', '/admin/projects', '/admin/projects/new', '/admin/projects/1', '/admin/skills', '/admin/contacts',
    '/admin/messages', '/admin/crm', '/admin/crm?project=lead-alert-bot', '/admin/activity', '/admin/workspaces',
    '/admin/analytics', '/admin/analytics?days=7', '/admin/analytics/utm',
    '/admin/analytics/utm?base_url=example.com&utm_source=x', '/admin/finance', '/admin/calendar',
    '/admin/calendar?year=2026&month=13', '/admin/settings', '/admin/content', '/admin/blog',
])
def test_admin_pages_render(admin_client, seeded, path):
    assert admin_client.get(path).status_code == 200


def test_admin_pages_with_data(admin_client, seeded):
    db.session.add(ContactSubmission(name='Ada', email='ada@example.com', subject='Bot', message='Hi',
                                     status='won', budget='$4,000', service_type='Telegram Bot'))
    db.session.add(CrmTask(project_id=1, title='Polish onboarding', status='review',
                           due_date=datetime(2026, 2, 10)))
    db.session.commit()

    assert 'Ada' in admin_client.get('/admin/messages').get_data(as_text=True)
    assert 'Polish onboarding' in admin_client.get('/admin/crm?project=portfolio-console').get_data(as_text=True)
    assert 'Polish onboarding' in admin_client.get('/admin/calendar?year=2026&month=2').get_data(as_text=True)
    assert '$4,000' in admin_client.get('/admin/finance').get_data(as_text=True)


def test_utm_builder_reports_invalid_url(admin_client):
    html = admin_client.get('/admin/analytics/utm?base_url=https://&utm_source=x').get_data(as_text=True)
    assert 'Invalid Base URL' in html


def test_unexpected_errors_render_error_page(admin_client):
    with patch('app.reports.build_dashboard', side_effect=RuntimeError('boom')):
        response = admin_client.get('/admin')
    assert response.status_code == 500
    assert b'Something went wrong' in response.data
