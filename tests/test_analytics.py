from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

import analytics
from models import db, PageView, utc_now

IPHONE_UA = 'Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 Version/17.0 Mobile Safari/604.1'
IPAD_UA = 'Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X) AppleWebKit/605.1.15 Version/17.0 Mobile Safari/604.1'
CHROME_UA = 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/120.0 Safari/537.36'
EDGE_UA = CHROME_UA + ' Edg/120.0'
FIREFOX_UA = 'Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0'


@pytest.mark.parametrize('user_agent, device', [
    (IPHONE_UA, 'mobile'),
    (IPAD_UA, 'tablet'),
    ('Mozilla/5.0 (Linux; Android 14) Mobile', 'mobile'),
    (CHROME_UA, 'desktop'),
    ('', 'desktop'),
])
def test_classify_device(user_agent, device):
    assert analytics.classify_device(user_agent) == device


@pytest.mark.parametrize('user_agent, browser', [
    (EDGE_UA, 'Edge'),
    (CHROME_UA, 'Chrome'),
    (IPHONE_UA, 'Safari'),
    (FIREFOX_UA, 'Firefox'),
    ('curl/8.0', 'Other'),
])
def test_classify_browser(user_agent, browser):
    assert analytics.classify_browser(user_agent) == browser


def test_referrer_source():
    assert analytics.referrer_source('https://www.google.com/search?q=x') == 'www.google.com'
    assert analytics.referrer_source('not a url') == 'not a url'


@pytest.mark.parametrize('raw, days', [(None, 30), ('7', 7), ('abc', 30), ('0', 30), ('-3', 30), ('90', 90)])
def test_parse_days(raw, days):
    assert analytics.parse_days(raw) == days


def view(path='/', day=1, **fields):
    fields.setdefault('device', 'desktop')
    fields.setdefault('browser', 'Chrome')
    return PageView(path=path, created_at=datetime(2026, 3, day, 12, 0), **fields)


def test_summarize_counts(app):
    views = [
        view('/', 1, referrer='https://google.com/', country='US'),
        view('/', 1, referrer='https://google.com/x', country='US'),
        view('/projects', 2, device='mobile', browser='Safari', country='DE'),
        view('/contact', 2, referrer=''),
    ]
    summary = analytics.summarize(views, 30)

    assert summary['totalViews'] == 4
    assert summary['byDay'] == {'2026-03-01': 2, '2026-03-02': 2}
    assert summary['topPages'][0] == {'path': '/', 'count': 2}
    assert summary['topReferrers'] == [{'source': 'google.com', 'count': 2}]
    assert summary['byDevice'] == {'desktop': 3, 'mobile': 1}
    assert summary['byBrowser'] == {'Chrome': 3, 'Safari': 1}
    assert summary['topCountries'][0] == {'country': 'US', 'count': 2}
    # (day, device, browser) tuples
    assert summary['uniqueVisitors'] == 3


def test_summarize_caps_and_sorts_top_lists(app):
    views = []
    for index in range(12):
        views.extend(view(f'/page-{index}') for _ in range(index + 1))
    summary = analytics.summarize(views, 30)

    pages = summary['topPages']
    assert len(pages) == 10
    counts = [row['count'] for row in pages]
    assert counts == sorted(counts, reverse=True)
    assert pages[0] == {'path': '/page-11', 'count': 12}
    assert sum(summary['byDay'].values()) == summary['totalViews']


def test_summarize_empty():
    assert analytics.summarize([], 7) == analytics.empty_summary(7)


def test_track_page_view(client):
    response = client.post('/api/admin/analytics', json={
        'path': '/projects',
        'referrer': 'https://news.ycombinator.com/item?id=1',
        'utmSource': 'hn',
        'utmCampaign': 'launch',
    }, headers={'User-Agent': IPHONE_UA, 'CF-IPCountry': 'NL'})
    assert response.status_code == 200
    assert response.get_json() == {'ok': True}

    stored = PageView.query.one()
    assert stored.path == '/projects'
    assert stored.device == 'mobile'
    assert stored.browser == 'Safari'
    assert stored.country == 'NL'
    assert stored.referrer == 'https://news.ycombinator.com/item?id=1'
    assert stored.utm_source == 'hn'
    assert stored.utm_campaign == 'launch'


def test_track_page_view_requires_path(client):
    response = client.post('/api/admin/analytics', json={'referrer': 'x'})
    assert response.status_code == 400
    assert PageView.query.count() == 0


def test_report_requires_admin(client):
    assert client.get('/api/admin/analytics').status_code == 401


def test_report_with_no_views(admin_client):
    response = admin_client.get('/api/admin/analytics?days=7')
    assert response.status_code == 200
    data = response.get_json()
    assert data['totalViews'] == 0
    assert data['uniqueVisitors'] == 0
    assert data['topPages'] == []
    assert data['days'] == 7


def test_report_only_counts_window(admin_client):
    now = utc_now()
    db.session.add_all([
        PageView(path='/', created_at=now - timedelta(days=1)),
        PageView(path='/', created_at=now - timedelta(days=2)),
        PageView(path='/old', created_at=now - timedelta(days=40)),
    ])
    db.session.commit()

    data = admin_client.get('/api/admin/analytics?days=30').get_json()
    assert data['totalViews'] == 2
    assert data['topPages'] == [{'path': '/', 'count': 2}]
    assert sum(data['byDay'].values()) == 2

    data = admin_client.get('/api/admin/analytics?days=bogus').get_json()
    assert data['days'] == 30


def test_report_degrades_to_empty_summary(admin_client):
    with patch('analytics.views_since', side_effect=OperationalError('SELECT', {}, Exception('db down'))):
        response = admin_client.get('/api/admin/analytics?days=7')
    assert response.status_code == 200
    assert response.get_json() == analytics.empty_summary(7)


def test_tracking_survives_commit_failure(client):
    with patch.object(db.session, 'commit', side_effect=OperationalError('INSERT', {}, Exception('db down'))):
        response = client.post('/api/admin/analytics', json={'path': '/'})
    assert response.status_code == 200
    assert response.get_json() == {'ok': True}
    assert PageView.query.count() == 0
