import calendar
import re
from urllib.parse import urlencode, urlsplit, urlunsplit, parse_qsl

from sqlalchemy import asc

from models import (ActivityLog, ContactSubmission, CrmTask, Project, Skill, isoformat, utc_now)
from models.contactSubmission import LEAD_STATUSES

PIPELINE_OPEN = ('qualified', 'proposal')
CLOSED_STATUSES = ('lost', 'archived')
UTM_KEYS = ('utm_source', 'utm_medium', 'utm_campaign', 'utm_term', 'utm_content')

DIGITS_RE = re.compile(r'\D')


def parse_budget(budget):
    digits = DIGITS_RE.sub('', budget or '')
    return int(digits) if digits else 0


def _lead_summary(lead):
    return {
        'id': lead.id, 'name': lead.name, 'email': lead.email, 'subject': lead.subject,
        'budget': lead.budget, 'status': lead.status, 'label': lead.label,
        'createdAt': isoformat(lead.created_at),
    }


def build_dashboard(now=None):
    now = now or utc_now()
    leads = ContactSubmission.query.order_by(ContactSubmission.created_at.desc()).all()
    tasks = CrmTask.query.all()
    recent_activity = ActivityLog.query.order_by(ActivityLog.created_at.desc()).limit(10).all()
    projects = Project.query.order_by(asc(Project.order)).all()

    pipeline = {status: 0 for status in LEAD_STATUSES}
    for lead in leads:
        if lead.status in pipeline:
            pipeline[lead.status] += 1

    hot_leads = [lead for lead in leads if lead.label == 'hot' or (lead.status == 'new' and not lead.read)]

    open_tasks = [task for task in tasks if task.due_date and task.status != 'done']
    open_tasks.sort(key=lambda task: task.due_date)

    return {
        'projectCount': len(projects),
        'skillCount': Skill.query.count(),
        'totalLeads': len(leads),
        'unreadLeads': len([lead for lead in leads if not lead.read]),
        'totalTasks': len(tasks),
        'pipeline': pipeline,
        'hotLeads': [_lead_summary(lead) for lead in hot_leads[:5]],
        'upcomingDeadlines': [task.to_dict() for task in open_tasks[:5]],
        'overdueTasks': len([task for task in open_tasks if task.due_date < now]),
        'tasksInProgress': len([task for task in tasks if task.status == 'in-progress']),
        'tasksDone': len([task for task in tasks if task.status == 'done']),
        'wonRevenue': sum(lead.deal_value or 0 for lead in leads if lead.status == 'won'),
        'pipelineValue': sum(lead.deal_value or 0 for lead in leads if lead.status in PIPELINE_OPEN),
        'recentActivity': [log.to_dict() for log in recent_activity],
        'projects': [{'title': p.title, 'slug': p.slug, 'progress': p.progress, 'category': p.category}
                     for p in projects],
    }


def overdue_tasks(now=None):
    now = now or utc_now()
    return (CrmTask.query.filter(CrmTask.due_date.isnot(None), CrmTask.due_date < now, CrmTask.status != 'done')
            .order_by(asc(CrmTask.due_date)).all())


def summarize_finances(leads):
    won = [lead for lead in leads if lead.status == 'won']
    in_pipeline = [lead for lead in leads if lead.status in PIPELINE_OPEN]

    by_service = {}
    for lead in leads:
        entry = by_service.setdefault(lead.service_type or 'Other', {'count': 0, 'revenue': 0, 'pipeline': 0})
        entry['count'] += 1
        if lead.status == 'won':
            entry['revenue'] += parse_budget(lead.budget)
        elif lead.status in PIPELINE_OPEN:
            entry['pipeline'] += parse_budget(lead.budget)

    by_month = {}
    for lead in won:
        key = lead.created_at.strftime('%Y-%m')
        by_month[key] = by_month.get(key, 0) + parse_budget(lead.budget)

    return {
        'wonRevenue': sum(parse_budget(lead.budget) for lead in won),
        'wonDeals': len(won),
        'pipelineValue': sum(parse_budget(lead.budget) for lead in in_pipeline),
        'pipelineDeals': len(in_pipeline),
        'totalPotential': sum(parse_budget(lead.budget) for lead in leads if lead.status not in CLOSED_STATUSES),
        'lostValue': sum(parse_budget(lead.budget) for lead in leads if lead.status == 'lost'),
        'byService': by_service,
        'byMonth': sorted(by_month.items(), reverse=True),
        'maxMonthly': max(list(by_month.values()) + [1]),
    }


def calendar_month(year, month, tasks, leads):
    """Weeks of day cells for ``year``/``month``, Monday first.

    Days outside the month are ``None``. Tasks land on their due date and
    leads on the day they arrived.
    """
    events = {}
    for task in tasks:
        if task.due_date and (task.due_date.year, task.due_date.month) == (year, month):
            events.setdefault(task.due_date.day, []).append({'kind': 'task', 'title': task.title,
                                                             'status': task.status})
    for lead in leads:
        if (lead.created_at.year, lead.created_at.month) == (year, month):
            events.setdefault(lead.created_at.day, []).append({'kind': 'lead', 'title': lead.name or lead.email,
                                                               'status': lead.status})

    weeks = []
    for week in calendar.Calendar(firstweekday=0).monthdayscalendar(year, month):
        weeks.append([{'day': day, 'events': events.get(day, [])} if day else None for day in week])
    return weeks


def shift_month(year, month, delta):
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def build_utm_url(base_url, **params):
    if not base_url:
        return ''
    if not base_url.startswith(('http://', 'https://')):
        base_url = f"https://{base_url}"

    parts = urlsplit(base_url)
    if not parts.netloc:
        raise ValueError(f"Invalid base URL: {base_url}")

    tracking = [(key, params[key]) for key in UTM_KEYS if params.get(key)]
    if not any(params.get(key) for key in UTM_KEYS[:3]):
        return base_url

    query = [(k, v) for k, v in parse_qsl(parts.query) if k not in UTM_KEYS] + tracking
    return urlunsplit((parts.scheme, parts.netloc, parts.path or '/', urlencode(query), parts.fragment))
