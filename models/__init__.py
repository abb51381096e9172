from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utc_now():
    # Stored naive, always UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value):
    if value is None:
        return None
    return value.isoformat() + 'Z'


from .project import Project, RoadmapItem
from .skill import Skill
from .socialLink import SocialLink
from .contactSubmission import ContactSubmission
from .crmTask import CrmTask
from .activityLog import ActivityLog
from .pageView import PageView
from .siteSetting import SiteSetting
from .article import Article, Topic
