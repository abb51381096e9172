import json

from models import db, Project, RoadmapItem, Skill, SocialLink, SiteSetting

PROJECTS = [
    {
        'title': 'Portfolio Console',
        'slug': 'portfolio-console',
        'description': 'Portfolio site with an admin console, lead pipeline and analytics.',
        'category': 'web',
        'progress': 80,
        'technologies': ['Python', 'Flask', 'SQLAlchemy'],
        'featured': True,
        'roadmap': [('Public pages', 'done'), ('CRM board', 'in-progress'), ('Newsletter', 'planned')],
    },
    {
        'title': 'Lead Alert Bot',
        'slug': 'lead-alert-bot',
        'description': 'Telegram bot that forwards new leads and pipeline changes.',
        'category': 'telegram',
        'progress': 100,
        'technologies': ['Python', 'Telegram Bot API'],
        'featured': True,
        'roadmap': [('Lead notifications', 'done'), ('Overdue task digest', 'done')],
    },
]

SKILLS = [
    ('Python', 'language', 95),
    ('TypeScript', 'language', 85),
    ('Flask', 'backend', 90),
    ('PostgreSQL', 'database', 80),
    ('Docker', 'devops', 75),
]

SOCIAL_LINKS = [
    ('GitHub', 'https://github.com/', 'github'),
    ('Telegram', 'https://t.me/', 'telegram'),
]

SETTINGS = {
    'hero_title': 'Software Architect',
    'hero_subtitle': 'Building digital products that ship.',
    'hero_cta_text': 'View My Work',
    'hero_cta_url': '/projects',
    'business_availability': 'Available for projects',
}


def load():
    for order, data in enumerate(PROJECTS):
        project = Project(title=data['title'], slug=data['slug'], description=data['description'],
                          category=data['category'], progress=data['progress'],
                          technologies=json.dumps(data['technologies']), featured=data['featured'], order=order)
        project.roadmap_items = [RoadmapItem(title=title, status=status, order=index)
                                 for index, (title, status) in enumerate(data['roadmap'])]
        db.session.add(project)

    for order, (name, category, level) in enumerate(SKILLS):
        db.session.add(Skill(name=name, category=category, level=level, order=order))

    for order, (name, url, icon) in enumerate(SOCIAL_LINKS):
        db.session.add(SocialLink(name=name, url=url, icon=icon, order=order))

    for key, value in SETTINGS.items():
        if SiteSetting.query.filter_by(key=key).first() is None:
            db.session.add(SiteSetting(key=key, value=value))

    db.session.commit()
