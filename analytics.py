import logging
import re
from collections import Counter
from datetime import timedelta
from urllib.parse import urlparse

from models import db, PageView, utc_now

logger = logging.getLogger(__name__)

DEFAULT_DAYS = 30
TOP_LIMIT = 10

MOBILE_RE = re.compile(r'mobile|android|iphone|ipad', re.IGNORECASE)
TABLET_RE = re.compile(r'ipad|tablet', re.IGNORECASE)


def classify_device(user_agent):
    ua = user_agent or ''
    if MOBILE_RE.search(ua):
        return 'tablet' if TABLET_RE.search(ua) else 'mobile'
    return 'desktop'


def classify_browser(user_agent):
    ua = (user_agent or '').lower()
    # Edge user agents also carry "chrome" and "safari"
    if 'edg' in ua:
        return 'Edge'
    if 'chrome' in ua:
        return 'Chrome'
    if 'safari' in ua:
        return 'Safari'
    if 'firefox' in ua:
        return 'Firefox'
    return 'Other'


def referrer_source(referrer):
    try:
        host = urlparse(referrer).hostname
    except ValueError:
        host = None
    return host or referrer


def parse_days(raw):
    try:
        days = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_DAYS
    return days if days > 0 else DEFAULT_DAYS


def _top(counter, key):
    ranked = sorted(counter.items(), key=lambda item: item[1], reverse=True)[:TOP_LIMIT]
    return [{key: name, 'count': count} for name, count in ranked]


def empty_summary(days):
    return {
        'totalViews': 0,
        'uniqueVisitors': 0,
        'days': days,
        'byDay': {},
        'topPages': [],
        'topReferrers': [],
        'byDevice': {},
        'byBrowser': {},
        'topCountries': [],
    }


def summarize(views, days):
    """Aggregate page views into the dashboard summary.

    ``uniqueVisitors`` counts distinct (day, device, browser) tuples. No
    cookie or fingerprint is stored, so it is only a rough estimate.
    """
    by_day = Counter()
    by_page = Counter()
    by_referrer = Counter()
    by_device = Counter()
    by_browser = Counter()
    by_country = Counter()
    visitors = set()

    for view in views:
        day = view.created_at.date().isoformat()
        by_day[day] += 1
        by_page[view.path] += 1
        if view.referrer:
            by_referrer[referrer_source(view.referrer)] += 1
        by_device[view.device or 'unknown'] += 1
        by_browser[view.browser or 'Other'] += 1
        if view.country:
            by_country[view.country] += 1
        visitors.add((day, view.device, view.browser))

    summary = empty_summary(days)
    summary.update({
        'totalViews': sum(by_day.values()),
        'uniqueVisitors': len(visitors),
        'byDay': dict(by_day),
        'topPages': _top(by_page, 'path'),
        'topReferrers': _top(by_referrer, 'source'),
        'byDevice': dict(by_device),
        'byBrowser': dict(by_browser),
        'topCountries': _top(by_country, 'country'),
    })
    return summary


def views_since(days):
    since = utc_now() - timedelta(days=days)
    return PageView.query.filter(PageView.created_at >= since).order_by(PageView.created_at.desc()).all()


def build_report(days):
    # Query failures degrade to an empty report
    try:
        views = views_since(days)
    except Exception as e:
        db.session.rollback()
        logger.error(f"Analytics query failed: {e}")
        return empty_summary(days)
    return summarize(views, days)
