from . import db, utc_now


class PageView(db.Model):
    __tablename__ = 'page_views'
    id = db.Column(db.Integer, primary_key=True)
    path = db.Column(db.String(500), nullable=False, index=True)
    referrer = db.Column(db.String(1000), nullable=False, default='')
    device = db.Column(db.String(20), nullable=False, default='')
    browser = db.Column(db.String(20), nullable=False, default='')
    country = db.Column(db.String(10), nullable=False, default='')
    utm_source = db.Column(db.String(100), nullable=False, default='')
    utm_medium = db.Column(db.String(100), nullable=False, default='')
    utm_campaign = db.Column(db.String(100), nullable=False, default='')
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now, index=True)
