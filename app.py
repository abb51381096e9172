from flask import Flask, render_template, request, redirect, url_for, flash, jsonify
import os
import base64
import hmac
import time
from datetime import datetime, timezone
from functools import wraps

import click
from flask_login import LoginManager, login_required, current_user, UserMixin
from flask_migrate import Migrate
from sqlalchemy import asc
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from models import (db, Project, RoadmapItem, Skill, SocialLink, ContactSubmission, CrmTask, ActivityLog,
                    PageView, SiteSetting, Article, isoformat, utc_now)
from models.crmTask import TASK_STATUSES
from models.contactSubmission import LEAD_STATUSES
from models.project import dump_json_list
import analytics
import article_generator
import queries
import reports
import seed
from notifications import notify_new_lead, notify_lead_status_change, notify_overdue_tasks

app = Flask(__name__)
app.secret_key = os.environ.get('SECRET_KEY', 'secret123')

###################################################################################################################
# Configuration comes from the environment. The defaults are for local development only.
###################################################################################################################
debug = os.environ.get('FLASK_DEBUG') == '1'
isProduction = os.environ.get('APP_ENV') == 'production'

app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///portfolio.db')
if os.environ.get('DATABASE_AUTH_TOKEN'):
    # Hosted SQLite (libsql) dialects take the token as a connect argument
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {'connect_args': {'auth_token': os.environ['DATABASE_AUTH_TOKEN']}}
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

app.config['ADMIN_PASSWORD'] = os.environ.get('ADMIN_PASSWORD', 'admin123')
app.config['SESSION_SECRET'] = os.environ.get('SESSION_SECRET', 'dev-secret')
app.config['CRON_SECRET'] = os.environ.get('CRON_SECRET', '')
app.config['OPENROUTER_API_KEY'] = os.environ.get('OPENROUTER_API_KEY', '')
app.config['PORTFOLIO_API_KEY'] = os.environ.get('PORTFOLIO_API_KEY', '')

SESSION_COOKIE = 'admin_session'
SESSION_MAX_AGE = 60 * 60 * 24 * 7

db.init_app(app)
migrate = Migrate(app, db)

# Flask-Login setup
login_manager = LoginManager()
login_manager.init_app(app)
login_manager.login_view = 'admin_login'


class AdminUser(UserMixin):
    id = 'admin'


###############################################################
# Session tokens
# The admin cookie holds base64("<secret>-<epoch ms>") and is valid
# when the decoded value starts with the session secret.
###############################################################
def create_session_token():
    data = f"{app.config['SESSION_SECRET']}-{int(time.time() * 1000)}"
    return base64.b64encode(data.encode('utf-8')).decode('ascii')


def validate_session(token):
    try:
        decoded = base64.b64decode(token).decode('utf-8')
    except ValueError:
        return False
    return decoded.startswith(app.config['SESSION_SECRET'])


def set_session_cookie(response):
    response.set_cookie(SESSION_COOKIE, create_session_token(), max_age=SESSION_MAX_AGE, httponly=True,
                        secure=isProduction, samesite='Lax', path='/')
    return response


# Admin identity is rebuilt from the cookie on every request
@login_manager.request_loader
def load_admin(req):
    token = req.cookies.get(SESSION_COOKIE)
    if token and validate_session(token):
        return AdminUser()
    return None


@login_manager.unauthorized_handler
def unauthorized():
    if request.path.startswith('/api/'):
        return jsonify({'error': 'Unauthorized'}), 401
    return redirect(url_for('admin_login', next=request.path))


def agent_api_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        api_key = app.config['PORTFOLIO_API_KEY']
        auth_header = request.headers.get('Authorization', '')
        if not api_key or not auth_header.startswith('Bearer ') \
                or not hmac.compare_digest(auth_header[7:], api_key):
            return jsonify({'error': 'Unauthorized. Invalid or missing API key.'}), 401
        return view(*args, **kwargs)
    return wrapped


###############################################################
# Request helpers
###############################################################
def json_body():
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def text(body, key, default=''):
    value = body.get(key)
    return default if value is None else str(value)


def parse_due_date(value):
    if not value:
        return None
    parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_limit(raw, default=50, ceiling=100):
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        limit = default
    return max(1, min(limit, ceiling))


def site_context():
    return {'settings': queries.get_site_settings(), 'social_links': queries.get_social_links()}


#####################################################
# Admin authentication API
#####################################################
@app.route('/api/admin/auth', methods=['POST'])
def api_login():
    body = json_body()
    if body.get('password') != app.config['ADMIN_PASSWORD']:
        return jsonify({'error': 'Invalid password'}), 401
    return set_session_cookie(jsonify({'success': True}))


@app.route('/api/admin/auth', methods=['DELETE'])
def api_logout():
    response = jsonify({'success': True})
    response.delete_cookie(SESSION_COOKIE, path='/')
    return response


@app.route('/api/admin/auth', methods=['GET'])
def api_session():
    if not current_user.is_authenticated:
        return jsonify({'authenticated': False}), 401
    return jsonify({'authenticated': True})


#####################################################
# Page view tracking and analytics
#####################################################
@app.route('/api/admin/analytics', methods=['POST'])
def track_page_view():
    body = json_body()
    path = body.get('path')
    if not path:
        return jsonify({'error': 'path required'}), 400

    # Tracking never fails the page that reports it
    try:
        user_agent = request.headers.get('User-Agent', '')
        view = PageView(
            path=str(path),
            referrer=text(body, 'referrer') or request.headers.get('Referer', ''),
            device=analytics.classify_device(user_agent),
            browser=analytics.classify_browser(user_agent),
            country=request.headers.get('X-Vercel-IP-Country') or request.headers.get('CF-IPCountry') or '',
            utm_source=text(body, 'utmSource'),
            utm_medium=text(body, 'utmMedium'),
            utm_campaign=text(body, 'utmCampaign'),
        )
        db.session.add(view)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        app.logger.error(f"Analytics tracking error: {e}")
    return jsonify({'ok': True})


@app.route('/api/admin/analytics', methods=['GET'])
@login_required
def analytics_report():
    days = analytics.parse_days(request.args.get('days'))
    return jsonify(analytics.build_report(days))


#####################################################
# Leads (contact form submissions)
#####################################################
@app.route('/api/contact', methods=['POST'])
def create_lead():
    body = json_body()
    if not body.get('email') or not body.get('subject') or not body.get('message'):
        return jsonify({'error': 'Email, subject and message are required'}), 400

    lead = ContactSubmission(
        name=text(body, 'name'),
        email=text(body, 'email'),
        subject=text(body, 'subject'),
        message=text(body, 'message'),
        budget=text(body, 'budget'),
        service_type=text(body, 'serviceType'),
        utm_source=text(body, 'utmSource'),
        utm_medium=text(body, 'utmMedium'),
        utm_campaign=text(body, 'utmCampaign'),
    )
    try:
        db.session.add(lead)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        app.logger.error(f"Error saving contact submission: {e}")
        return jsonify({'error': 'Failed to send message'}), 500

    notify_new_lead(lead)
    return jsonify({'message': 'Message sent successfully', 'id': lead.id}), 201


@app.route('/api/contact', methods=['GET'])
@login_required
def list_leads():
    try:
        leads = ContactSubmission.query.order_by(ContactSubmission.created_at.desc()).all()
    except Exception as e:
        app.logger.error(f"Error fetching submissions: {e}")
        return jsonify({'error': 'Failed to fetch submissions'}), 500
    return jsonify([lead.to_dict() for lead in leads])


@app.route('/api/contact/<int:lead_id>', methods=['PATCH'])
@login_required
def update_lead(lead_id):
    lead = ContactSubmission.query.get_or_404(lead_id)
    body = json_body()
    old_status = lead.status

    if 'read' in body:
        lead.read = bool(body['read'])
    for key in ('status', 'label', 'notes'):
        if key in body:
            setattr(lead, key, text(body, key))
    if 'dealValue' in body:
        try:
            lead.deal_value = int(body['dealValue'] or 0)
        except (TypeError, ValueError):
            return jsonify({'error': 'dealValue must be a number'}), 400

    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        app.logger.error(f"Update contact error: {e}")
        return jsonify({'error': 'Failed to update'}), 500

    if 'status' in body and lead.status != old_status:
        notify_lead_status_change(lead, old_status, lead.status)
    return jsonify({'success': True, 'submission': lead.to_dict()})


@app.route('/api/contact/<int:lead_id>', methods=['DELETE'])
@login_required
def delete_lead(lead_id):
    lead = ContactSubmission.query.get_or_404(lead_id)
    db.session.delete(lead)
    db.session.commit()
    return jsonify({'success': True})


#####################################################
# Projects
#####################################################
PROJECT_FIELDS = {
    'title': 'title',
    'slug': 'slug',
    'description': 'description',
    'category': 'category',
    'githubUrl': 'github_url',
    'demoUrl': 'demo_url',
    'localPath': 'local_path',
}
NULLABLE_PROJECT_FIELDS = ('github_url', 'demo_url')


def apply_project_fields(project, body):
    """Copy the payload onto ``project``. Raises ValueError on bad numbers."""
    for key, attr in PROJECT_FIELDS.items():
        if key not in body:
            continue
        if body[key] is None and attr not in NULLABLE_PROJECT_FIELDS:
            continue
        setattr(project, attr, body[key])
    for key in ('progress', 'order'):
        if body.get(key) is not None:
            setattr(project, key, int(body[key]))
    if 'featured' in body:
        project.featured = bool(body['featured'])
    for key in ('technologies', 'images'):
        if key in body:
            setattr(project, key, dump_json_list(body[key]))


def build_roadmap(items):
    roadmap = []
    for index, item in enumerate(items or []):
        if not isinstance(item, dict):
            continue
        order = item.get('order')
        roadmap.append(RoadmapItem(title=text(item, 'title'), status=item.get('status') or 'planned',
                                   order=index if order is None else int(order)))
    return roadmap


@app.route('/api/projects', methods=['GET'])
def list_projects():
    try:
        projects = queries.get_projects(category=request.args.get('category'),
                                        featured=request.args.get('featured') == 'true')
    except Exception as e:
        app.logger.error(f"Error fetching projects: {e}")
        return jsonify({'error': 'Failed to fetch projects'}), 500
    return jsonify(projects)


@app.route('/api/projects', methods=['POST'])
@login_required
def create_project():
    body = json_body()
    if not body.get('title') or not body.get('slug'):
        return jsonify({'error': 'title and slug are required'}), 400

    project = Project()
    try:
        apply_project_fields(project, body)
        project.roadmap_items = build_roadmap(body.get('roadmapItems'))
    except (TypeError, ValueError):
        return jsonify({'error': 'Invalid project data'}), 400

    try:
        db.session.add(project)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': 'A project with this slug already exists'}), 400
    except Exception as e:
        db.session.rollback()
        app.logger.error(f"Error creating project: {e}")
        return jsonify({'error': 'Failed to create project'}), 500
    return jsonify(project.to_dict()), 201


@app.route('/api/projects/<slug>', methods=['GET'])
def get_project(slug):
    project = queries.get_project_by_slug(slug)
    if project is None:
        return jsonify({'error': 'Project not found'}), 404
    return jsonify(project)


@app.route('/api/projects/<slug>', methods=['PUT'])
@login_required
def update_project(slug):
    project = Project.query.filter_by(slug=slug).first()
    if project is None:
        return jsonify({'error': 'Project not found'}), 404

    body = json_body()
    try:
        apply_project_fields(project, body)
        if body.get('roadmapItems') is not None:
            project.roadmap_items = build_roadmap(body['roadmapItems'])
    except (TypeError, ValueError):
        db.session.rollback()
        return jsonify({'error': 'Invalid project data'}), 400

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': 'A project with this slug already exists'}), 400
    except Exception as e:
        db.session.rollback()
        app.logger.error(f"Error updating project: {e}")
        return jsonify({'error': 'Failed to update project'}), 500
    return jsonify(project.to_dict())


@app.route('/api/projects/<slug>', methods=['DELETE'])
@login_required
def delete_project(slug):
    project = Project.query.filter_by(slug=slug).first()
    if project is None:
        return jsonify({'error': 'Project not found'}), 404
    db.session.delete(project)
    db.session.commit()
    return jsonify({'message': 'Project deleted successfully'})


@app.route('/api/projects/by-id/<int:project_id>', methods=['DELETE'])
@login_required
def delete_project_by_id(project_id):
    project = Project.query.get_or_404(project_id)
    db.session.delete(project)
    db.session.commit()
    return jsonify({'success': True})


#####################################################
# Skills and social links
#####################################################
@app.route('/api/skills', methods=['GET'])
def list_skills():
    return jsonify(queries.get_skills())


@app.route('/api/skills', methods=['POST'])
@login_required
def create_skill():
    body = json_body()
    if not body.get('name'):
        return jsonify({'error': 'name is required'}), 400
    try:
        skill = Skill(name=text(body, 'name'), category=text(body, 'category', 'language'),
                      level=int(body.get('level') or 0), order=int(body.get('order') or 0))
    except (TypeError, ValueError):
        return jsonify({'error': 'level and order must be numbers'}), 400
    db.session.add(skill)
    db.session.commit()
    return jsonify(skill.to_dict()), 201


@app.route('/api/skills/<int:skill_id>', methods=['DELETE'])
@login_required
def delete_skill(skill_id):
    skill = Skill.query.get_or_404(skill_id)
    db.session.delete(skill)
    db.session.commit()
    return jsonify({'success': True})


@app.route('/api/social-links', methods=['GET'])
def list_social_links():
    return jsonify(queries.get_social_links())


@app.route('/api/social-links', methods=['PUT'])
@login_required
def replace_social_links():
    links = json_body().get('links') or []
    if not isinstance(links, list):
        return jsonify({'error': 'links must be an array'}), 400

    try:
        SocialLink.query.delete()
        for index, link in enumerate(links):
            db.session.add(SocialLink(name=text(link, 'name'), url=text(link, 'url'), icon=text(link, 'icon'),
                                      order=index))
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        app.logger.error(f"Error updating social links: {e}")
        return jsonify({'error': 'Failed to update social links'}), 500
    return jsonify(queries.get_social_links())


#####################################################
# Site settings
#####################################################
@app.route('/api/admin/settings', methods=['GET'])
@login_required
def list_settings():
    # Read failures return an empty list
    try:
        settings = [setting.to_dict() for setting in SiteSetting.query.all()]
    except Exception as e:
        db.session.rollback()
        app.logger.error(f"Settings fetch error: {e}")
        return jsonify([]), 200
    return jsonify(settings)


@app.route('/api/admin/settings', methods=['PUT'])
@login_required
def save_settings():
    settings = json_body().get('settings')
    if not isinstance(settings, list):
        return jsonify({'error': 'settings must be an array'}), 400

    results = []
    try:
        for item in settings:
            key = text(item, 'key') if isinstance(item, dict) else ''
            if not key:
                continue
            setting = SiteSetting.query.filter_by(key=key).first()
            if setting is None:
                setting = SiteSetting(key=key)
                db.session.add(setting)
            setting.value = text(item, 'value')
            results.append(setting)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        app.logger.error(f"Settings update error: {e}")
        return jsonify({'error': 'Failed to save'}), 500
    return jsonify([setting.to_dict() for setting in results])


#####################################################
# CRM tasks
#####################################################
TASK_FIELDS = ('title', 'description', 'type', 'status', 'priority', 'author')


def next_task_order(project_id, status):
    last = (CrmTask.query.filter_by(project_id=project_id, status=status)
            .order_by(CrmTask.order.desc()).first())
    return last.order + 1 if last else 0


def filtered_tasks(project_id=None, **filters):
    query = CrmTask.query
    if project_id is not None:
        query = query.filter_by(project_id=project_id)
    for key, value in filters.items():
        if value:
            query = query.filter(getattr(CrmTask, key) == value)
    return query.order_by(asc(CrmTask.order), CrmTask.created_at.desc()).all()


def create_task(project, body, author):
    status = text(body, 'status', 'backlog') or 'backlog'
    task = CrmTask(
        project_id=project.id,
        title=text(body, 'title'),
        description=text(body, 'description'),
        type=text(body, 'type', 'task') or 'task',
        status=status,
        priority=text(body, 'priority', 'medium') or 'medium',
        due_date=parse_due_date(body.get('dueDate')),
        order=next_task_order(project.id, status),
        author=author,
    )
    db.session.add(task)
    db.session.commit()
    return task


@app.route('/api/admin/crm/tasks', methods=['GET'])
@login_required
def list_tasks():
    project_slug = request.args.get('projectSlug')
    project_id = None
    if project_slug:
        project_id = queries.find_project_id(project_slug)
        if project_id is None:
            return jsonify({'tasks': []})
    try:
        tasks = filtered_tasks(project_id, status=request.args.get('status'), type=request.args.get('type'),
                               priority=request.args.get('priority'))
    except Exception as e:
        app.logger.error(f"Error fetching CRM tasks: {e}")
        return jsonify({'error': 'Failed to fetch tasks'}), 500
    return jsonify({'tasks': [task.to_dict() for task in tasks]})


@app.route('/api/admin/crm/tasks', methods=['POST'])
@login_required
def create_crm_task():
    body = json_body()
    if not body.get('projectSlug') or not body.get('title'):
        return jsonify({'error': 'projectSlug and title are required'}), 400

    project = Project.query.filter_by(slug=body['projectSlug']).first()
    if project is None:
        return jsonify({'error': 'Project not found'}), 404

    try:
        task = create_task(project, body, text(body, 'author', 'manual') or 'manual')
    except ValueError:
        return jsonify({'error': 'Invalid dueDate'}), 400
    except Exception as e:
        db.session.rollback()
        app.logger.error(f"Error creating CRM task: {e}")
        return jsonify({'error': 'Failed to create task'}), 500
    return jsonify({'success': True, 'task': task.to_dict()}), 201


@app.route('/api/admin/crm/tasks', methods=['PATCH'])
@login_required
def update_crm_task():
    body = json_body()
    if not body.get('id'):
        return jsonify({'error': 'id is required'}), 400

    task = CrmTask.query.get_or_404(body['id'])
    try:
        for key in TASK_FIELDS:
            if body.get(key) is not None:
                setattr(task, key, text(body, key))
        if 'dueDate' in body:
            task.due_date = parse_due_date(body['dueDate'])
        if body.get('order') is not None:
            task.order = int(body['order'])
    except ValueError:
        db.session.rollback()
        return jsonify({'error': 'Invalid task data'}), 400

    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        app.logger.error(f"Error updating CRM task: {e}")
        return jsonify({'error': 'Failed to update task'}), 500
    return jsonify({'success': True, 'task': task.to_dict()})


@app.route('/api/admin/crm/tasks', methods=['DELETE'])
@login_required
def delete_crm_task():
    task_id = request.args.get('id', type=int)
    if not task_id:
        return jsonify({'error': 'id is required'}), 400
    task = CrmTask.query.get_or_404(task_id)
    db.session.delete(task)
    db.session.commit()
    return jsonify({'success': True})


#####################################################
# Activity log and workspaces
#####################################################
def list_activity():
    query = ActivityLog.query
    project_slug = request.args.get('projectSlug')
    if project_slug:
        project_id = queries.find_project_id(project_slug)
        if project_id is None:
            return []
        query = query.filter_by(project_id=project_id)
    if request.args.get('type'):
        query = query.filter_by(type=request.args['type'])
    limit = parse_limit(request.args.get('limit'))
    return query.order_by(ActivityLog.created_at.desc()).limit(limit).all()


def create_activity(body, default_author):
    log = ActivityLog(
        project_id=queries.find_project_id(body.get('projectSlug')),
        type=text(body, 'type'),
        title=text(body, 'title'),
        details=text(body, 'details'),
        author=text(body, 'author', default_author) or default_author,
    )
    db.session.add(log)
    db.session.commit()
    return log


@app.route('/api/admin/activity', methods=['GET'])
@login_required
def activity_feed():
    try:
        logs = list_activity()
    except Exception as e:
        app.logger.error(f"Error fetching activity logs: {e}")
        return jsonify({'error': 'Failed to fetch logs'}), 500
    return jsonify({'logs': [log.to_dict() for log in logs]})


@app.route('/api/admin/activity', methods=['POST'])
@login_required
def add_activity():
    body = json_body()
    if not body.get('type') or not body.get('title'):
        return jsonify({'error': 'type and title are required'}), 400
    try:
        log = create_activity(body, 'manual')
    except Exception as e:
        db.session.rollback()
        app.logger.error(f"Error creating activity log: {e}")
        return jsonify({'error': 'Failed to create log'}), 500
    return jsonify({'success': True, 'id': log.id}), 201


def workspace_rows():
    rows = []
    for project in Project.query.order_by(asc(Project.order)).all():
        last = project.activity_logs[0] if project.activity_logs else None
        rows.append({
            'id': project.id,
            'title': project.title,
            'slug': project.slug,
            'category': project.category,
            'progress': project.progress,
            'localPath': project.local_path,
            'lastActivity': isoformat(last.created_at) if last else None,
            'lastActivityType': last.type if last else None,
        })
    return rows


@app.route('/api/admin/workspaces', methods=['GET'])
@login_required
def workspaces():
    try:
        rows = workspace_rows()
    except Exception as e:
        app.logger.error(f"Error fetching workspaces: {e}")
        return jsonify({'error': 'Failed to fetch'}), 500
    return jsonify({'projects': rows})


@app.route('/api/admin/dashboard', methods=['GET'])
@login_required
def dashboard_data():
    try:
        data = reports.build_dashboard()
    except Exception as e:
        app.logger.error(f"Dashboard API error: {e}")
        return jsonify({'error': 'Failed to load dashboard'}), 500
    return jsonify(data)


#####################################################
# Blog articles and AI generation
#####################################################
@app.route('/api/admin/blog', methods=['GET'])
@login_required
def list_articles():
    try:
        articles = Article.query.order_by(Article.created_at.desc()).all()
    except Exception as e:
        app.logger.error(f"Error fetching articles: {e}")
        return jsonify({'error': str(e)}), 500
    return jsonify([article.to_dict() for article in articles])


@app.route('/api/admin/blog', methods=['DELETE'])
@login_required
def delete_article():
    article_id = request.args.get('id', type=int)
    if not article_id:
        return jsonify({'error': 'Article ID is required'}), 400
    article = Article.query.get_or_404(article_id)
    db.session.delete(article)
    db.session.commit()
    return jsonify({'success': True})


@app.route('/api/cron/generate-article', methods=['GET'])
def generate_article():
    cron_secret = app.config['CRON_SECRET']
    if cron_secret and not current_user.is_authenticated \
            and request.headers.get('Authorization') != f"Bearer {cron_secret}":
        return jsonify({'error': 'Unauthorized'}), 401

    api_key = app.config['OPENROUTER_API_KEY']
    if not api_key:
        return jsonify({'error': 'OPENROUTER_API_KEY is missing'}), 500

    try:
        article, item = article_generator.generate_article(api_key)
    except article_generator.EmptyFeedError as e:
        return jsonify({'error': str(e)}), 404
    except article_generator.InvalidModelOutput as e:
        return jsonify({'error': str(e), 'rawOutput': e.raw_output}), 500
    except Exception as e:
        db.session.rollback()
        app.logger.error(f"AI generation error: {e}")
        return jsonify({'error': str(e)}), 500

    return jsonify({'success': True, 'sourceNews': item['title'], 'article': article.slug})


#####################################################
# Agent API (API key protected)
#####################################################
@app.route('/api/agent/projects', methods=['GET'])
@agent_api_required
def agent_list_projects():
    projects = Project.query.order_by(asc(Project.order)).all()
    return jsonify({'projects': [
        {'id': p.id, 'title': p.title, 'slug': p.slug, 'category': p.category, 'progress': p.progress,
         'featured': p.featured}
        for p in projects
    ]})


@app.route('/api/agent/projects', methods=['POST'])
@agent_api_required
def agent_upsert_project():
    body = json_body()
    title = body.get('title')
    if not title:
        return jsonify({'error': 'Title is required'}), 400

    slug = body.get('slug') or article_generator.slugify(title)
    project = Project.query.filter_by(slug=slug).first()
    action = 'updated' if project else 'created'

    try:
        if project is None:
            last = Project.query.order_by(Project.order.desc()).first()
            project = Project(slug=slug, description=f"{title} project", order=(last.order if last else 0) + 1)
            db.session.add(project)
        apply_project_fields(project, {key: value for key, value in body.items() if key != 'slug'})
        # Roadmap is only replaced when the agent sends one
        if body.get('roadmapItems'):
            items = [dict(item, order=index) for index, item in enumerate(body['roadmapItems'])
                     if isinstance(item, dict)]
            project.roadmap_items = build_roadmap(items)
        db.session.commit()
    except (TypeError, ValueError):
        db.session.rollback()
        return jsonify({'error': 'Invalid project data'}), 400
    except Exception as e:
        db.session.rollback()
        app.logger.error(f"Error in agent projects API: {e}")
        return jsonify({'error': 'Failed to process project'}), 500

    return jsonify({'success': True, 'action': action, 'project': {
        'id': project.id, 'title': project.title, 'slug': project.slug, 'progress': project.progress,
    }})


@app.route('/api/agent/projects', methods=['DELETE'])
@agent_api_required
def agent_delete_project():
    slug = request.args.get('slug')
    if not slug:
        return jsonify({'error': 'slug is required'}), 400
    project = Project.query.filter_by(slug=slug).first()
    if project is None:
        return jsonify({'error': 'Project not found'}), 404
    db.session.delete(project)
    db.session.commit()
    return jsonify({'success': True, 'action': 'deleted', 'slug': slug})


@app.route('/api/agent/activity', methods=['GET'])
@agent_api_required
def agent_activity_feed():
    return jsonify({'logs': [log.to_dict() for log in list_activity()]})


@app.route('/api/agent/activity', methods=['POST'])
@agent_api_required
def agent_add_activity():
    body = json_body()
    if not body.get('type') or not body.get('title'):
        return jsonify({'error': 'type and title are required'}), 400
    log = create_activity(body, 'agent')
    return jsonify({'success': True, 'id': log.id}), 201


@app.route('/api/agent/crm', methods=['GET'])
@agent_api_required
def agent_list_tasks():
    project_slug = request.args.get('projectSlug')
    if not project_slug:
        return jsonify({'error': 'projectSlug is required'}), 400
    project_id = queries.find_project_id(project_slug)
    if project_id is None:
        return jsonify({'error': 'Project not found'}), 404
    tasks = filtered_tasks(project_id, status=request.args.get('status'))
    return jsonify({'tasks': [task.to_dict(include_project=False) for task in tasks]})


@app.route('/api/agent/crm', methods=['POST'])
@agent_api_required
def agent_manage_task():
    body = json_body()
    if not body.get('projectSlug'):
        return jsonify({'error': 'projectSlug is required'}), 400
    project = Project.query.filter_by(slug=body['projectSlug']).first()
    if project is None:
        return jsonify({'error': 'Project not found'}), 404

    try:
        if body.get('taskId'):
            task = CrmTask.query.get_or_404(body['taskId'])
            for key in ('title', 'description', 'type', 'status', 'priority'):
                if body.get(key):
                    setattr(task, key, text(body, key))
            if body.get('dueDate'):
                task.due_date = parse_due_date(body['dueDate'])
            db.session.commit()
            return jsonify({'success': True, 'action': 'updated', 'task': task.to_dict(include_project=False)})

        if not body.get('title'):
            return jsonify({'error': 'title is required for new tasks'}), 400
        task = create_task(project, body, 'agent')
    except ValueError:
        db.session.rollback()
        return jsonify({'error': 'Invalid dueDate'}), 400
    return jsonify({'success': True, 'action': 'created', 'task': task.to_dict(include_project=False)}), 201


#####################################################
# Marketing pages
#####################################################
@app.route('/')
def index():
    return render_template('index.html', featured=queries.get_featured_projects(),
                           skills=queries.get_skills_by_category(), **site_context())


@app.route('/about')
def about():
    return render_template('about.html', skills=queries.get_skills_by_category(), **site_context())


@app.route('/services')
def services():
    return render_template('services.html', **site_context())


@app.route('/projects')
def projects():
    category = request.args.get('category', 'all')
    return render_template('projects.html', projects=queries.get_projects(category=category),
                           categories=queries.CATEGORIES, category=category, **site_context())


@app.route('/projects/<slug>')
def project_detail(slug):
    project = queries.get_project_by_slug(slug)
    if project is None:
        return render_template('404.html'), 404
    return render_template('project.html', project=project, **site_context())


@app.route('/blog')
def blog():
    return render_template('blog.html', articles=queries.get_published_articles(), **site_context())


@app.route('/blog/<slug>')
def blog_article(slug):
    article = Article.query.filter_by(slug=slug, status='PUBLISHED').first()
    if article is None:
        return render_template('404.html'), 404
    return render_template('article.html', article=article, **site_context())


@app.route('/contact')
def contact():
    return render_template('contact.html', **site_context())


#####################################################
# Admin pages
#####################################################
SETTINGS_SECTIONS = [
    ('Hero', [('hero_title', 'Title'), ('hero_subtitle', 'Subtitle'), ('hero_cta_text', 'CTA Button Text'),
              ('hero_cta_url', 'CTA Button URL')]),
    ('SEO', [('seo_title', 'Site Title'), ('seo_description', 'Meta Description'),
             ('seo_og_image', 'OG Image URL'), ('seo_keywords', 'Keywords')]),
    ('Contact', [('contact_email', 'Contact Email'), ('contact_calendly', 'Calendly URL'),
                 ('business_location', 'Location'), ('business_availability', 'Availability Status')]),
]

CONTENT_SECTIONS = [
    ('About page', [('about_heading', 'Page Heading'), ('about_intro', 'Introduction'), ('about_bio', 'Full Bio'),
                    ('about_experience_years', 'Years of Experience'),
                    ('about_projects_count', 'Projects Completed'), ('about_clients_count', 'Happy Clients')]),
    ('Services page', [('services_heading', 'Page Heading'), ('services_intro', 'Introduction'),
                       ('services_process_title', 'Process Section Title'),
                       ('services_process_steps', 'Process Steps (one per line)')]),
    ('Footer', [('footer_tagline', 'Footer Tagline'), ('footer_copyright', 'Copyright Text'),
                ('global_cta_text', 'Global CTA Text')]),
]


@app.route('/admin/login', methods=['GET', 'POST'])
def admin_login():
    if current_user.is_authenticated:
        return redirect(url_for('admin_dashboard'))

    if request.method == 'POST':
        if request.form.get('password') == app.config['ADMIN_PASSWORD']:
            next_page = request.args.get('next') or ''
            target = next_page if next_page.startswith('/admin') else url_for('admin_dashboard')
            return set_session_cookie(redirect(target))
        flash('Invalid password', 'danger')

    return render_template('admin/login.html')


@app.route('/admin/logout')
def admin_logout():
    response = redirect(url_for('admin_login'))
    response.delete_cookie(SESSION_COOKIE, path='/')
    return response


@app.route('/admin')
@login_required
def admin_dashboard():
    return render_template('admin/dashboard.html', data=reports.build_dashboard())


@app.route('/admin/projects')
@login_required
def admin_projects():
    return render_template('admin/projects.html', projects=queries.get_projects())


@app.route('/admin/projects/new')
@login_required
def admin_new_project():
    return render_template('admin/project_form.html', action="Add", project={})


@app.route('/admin/projects/<int:project_id>')
@login_required
def admin_edit_project(project_id):
    project = Project.query.get_or_404(project_id)
    return render_template('admin/project_form.html', action="Edit", project=project.to_dict())


@app.route('/admin/skills')
@login_required
def admin_skills():
    return render_template('admin/skills.html', skills=queries.get_skills())


@app.route('/admin/contacts')
@login_required
def admin_social_links():
    return render_template('admin/social_links.html', links=queries.get_social_links())


@app.route('/admin/messages')
@login_required
def admin_messages():
    leads = ContactSubmission.query.order_by(ContactSubmission.created_at.desc()).all()
    return render_template('admin/messages.html', leads=leads, statuses=LEAD_STATUSES)


@app.route('/admin/crm')
@login_required
def admin_crm():
    all_projects = Project.query.order_by(asc(Project.order)).all()
    selected = request.args.get('project') or (all_projects[0].slug if all_projects else '')
    project_id = queries.find_project_id(selected)
    tasks = filtered_tasks(project_id) if project_id else []
    columns = [(status, [task for task in tasks if task.status == status]) for status in TASK_STATUSES]
    return render_template('admin/crm.html', projects=all_projects, selected=selected, columns=columns,
                           statuses=TASK_STATUSES)


@app.route('/admin/activity')
@login_required
def admin_activity():
    return render_template('admin/activity.html', logs=list_activity(),
                           projects=Project.query.order_by(asc(Project.order)).all())


@app.route('/admin/workspaces')
@login_required
def admin_workspaces():
    return render_template('admin/workspaces.html', projects=workspace_rows())


@app.route('/admin/analytics')
@login_required
def admin_analytics():
    days = analytics.parse_days(request.args.get('days'))
    return render_template('admin/analytics.html', report=analytics.build_report(days), days=days)


@app.route('/admin/analytics/utm')
@login_required
def admin_utm():
    params = {key: request.args.get(key, '').strip() for key in reports.UTM_KEYS}
    base_url = request.args.get('base_url', request.host_url).strip()
    try:
        generated = reports.build_utm_url(base_url, **params)
    except ValueError:
        generated = 'Invalid Base URL'
    return render_template('admin/utm.html', base_url=base_url, params=params, generated=generated)


@app.route('/admin/finance')
@login_required
def admin_finance():
    leads = ContactSubmission.query.all()
    return render_template('admin/finance.html', finance=reports.summarize_finances(leads))


@app.route('/admin/calendar')
@login_required
def admin_calendar():
    today = utc_now()
    year = request.args.get('year', today.year, type=int)
    month = request.args.get('month', today.month, type=int)
    if not 1 <= month <= 12:
        year, month = today.year, today.month
    weeks = reports.calendar_month(year, month, CrmTask.query.all(), ContactSubmission.query.all())
    return render_template('admin/calendar.html', weeks=weeks, year=year, month=month,
                           prev=reports.shift_month(year, month, -1), next=reports.shift_month(year, month, 1))


@app.route('/admin/settings')
@login_required
def admin_settings():
    return render_template('admin/settings.html', title="Settings", sections=SETTINGS_SECTIONS,
                           values=queries.get_site_settings())


@app.route('/admin/content')
@login_required
def admin_content():
    return render_template('admin/settings.html', title="Content", sections=CONTENT_SECTIONS,
                           values=queries.get_site_settings())


@app.route('/admin/blog')
@login_required
def admin_blog():
    articles = Article.query.order_by(Article.created_at.desc()).all()
    return render_template('admin/blog.html', articles=articles)


#######################################################
# CLI commands
#######################################################
@app.cli.command('init-db')
def init_db_command():
    """Create all database tables."""
    db.create_all()
    click.echo('Database tables created.')


@app.cli.command('seed')
def seed_command():
    """Load sample projects, skills and links into an empty database."""
    if Project.query.first() is not None:
        click.echo('Database already has projects, skipping seed.')
        return
    seed.load()
    click.echo('Sample data loaded.')


@app.cli.command('notify-overdue')
def notify_overdue_command():
    """Send the list of overdue CRM tasks to Telegram."""
    tasks = reports.overdue_tasks()
    notify_overdue_tasks(tasks)
    click.echo(f'{len(tasks)} overdue task(s) reported.')


#######################################################
# Error Handler for 404 Not Found Error
#######################################################
@app.errorhandler(404)
def not_found(e):
    if request.path.startswith('/api/'):
        return jsonify({'error': 'Not found'}), 404
    return render_template("404.html"), 404


#######################################################
# Error Handler for 500 Internal Server Error
#######################################################
@app.errorhandler(Exception)
def handle_exception(e):
    if isinstance(e, HTTPException):
        return e
    db.session.rollback()
    # Log the exception
    app.logger.error(f"Unhandled Exception: {e}")
    if request.path.startswith('/api/'):
        return jsonify({'error': 'Internal server error'}), 500
    # Show a friendly error page
    return render_template('error.html', error=str(e)), 500


if __name__ == '__main__':
    app.run(debug=debug)
