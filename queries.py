from sqlalchemy import asc

from models import Project, Skill, SocialLink, SiteSetting, Article

CATEGORIES = [
    {'id': 'all', 'name': 'All Projects', 'icon': '🚀'},
    {'id': 'mobile', 'name': 'Mobile Apps', 'icon': '📱'},
    {'id': 'telegram', 'name': 'Telegram Bots', 'icon': '🤖'},
    {'id': 'web', 'name': 'Web Services', 'icon': '🌐'},
]


def get_projects(category=None, featured=False, limit=None):
    query = Project.query
    if category and category != 'all':
        query = query.filter_by(category=category)
    if featured:
        query = query.filter_by(featured=True)
    query = query.order_by(asc(Project.order))
    if limit:
        query = query.limit(limit)
    return [project.to_dict() for project in query.all()]


def get_featured_projects():
    return get_projects(featured=True, limit=3)


def get_project_by_slug(slug):
    project = Project.query.filter_by(slug=slug).first()
    return project.to_dict() if project else None


def find_project_id(slug):
    if not slug:
        return None
    project = Project.query.filter_by(slug=slug).first()
    return project.id if project else None


def get_skills():
    return [skill.to_dict() for skill in Skill.query.order_by(asc(Skill.category), asc(Skill.order)).all()]


def get_skills_by_category():
    grouped = {}
    for skill in get_skills():
        grouped.setdefault(skill['category'], []).append(skill)
    return grouped


def get_social_links():
    return [link.to_dict() for link in SocialLink.query.order_by(asc(SocialLink.order)).all()]


def get_site_settings():
    return {setting.key: setting.value for setting in SiteSetting.query.all()}


def get_published_articles():
    return (Article.query.filter_by(status='PUBLISHED')
            .order_by(Article.published_at.desc(), Article.created_at.desc()).all())
