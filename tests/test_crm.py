from datetime import timedelta
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from models import db, ActivityLog, CrmTask, SiteSetting, utc_now


def test_create_tasks_are_appended_per_column(admin_client, make_project):
    make_project('shop')
    first = admin_client.post('/api/admin/crm/tasks', json={'projectSlug': 'shop', 'title': 'Design'})
    second = admin_client.post('/api/admin/crm/tasks', json={
        'projectSlug': 'shop', 'title': 'Checkout', 'priority': 'high', 'dueDate': '2026-05-01T10:00:00Z',
    })
    assert first.status_code == 201
    task = second.get_json()['task']
    assert task['order'] == 1
    assert task['status'] == 'backlog'
    assert task['priority'] == 'high'
    assert task['author'] == 'manual'
    assert task['dueDate'] == '2026-05-01T10:00:00Z'
    assert task['project'] == {'title': 'Shop', 'slug': 'shop'}


def test_create_task_validation(admin_client, make_project):
    make_project('shop')
    assert admin_client.post('/api/admin/crm/tasks', json={'title': 'x'}).status_code == 400
    assert admin_client.post('/api/admin/crm/tasks', json={'projectSlug': 'nope', 'title': 'x'}).status_code == 404
    response = admin_client.post('/api/admin/crm/tasks', json={'projectSlug': 'shop', 'title': 'x',
                                                               'dueDate': 'tomorrow'})
    assert response.status_code == 400


def test_list_tasks_filters(admin_client, make_project, make_task):
    shop = make_project('shop')
    blog = make_project('blog')
    make_task(shop, 'A', status='todo', priority='high')
    make_task(shop, 'B', status='done')
    make_task(blog, 'C', status='todo')

    def titles(query):
        return sorted(task['title'] for task in admin_client.get(f'/api/admin/crm/tasks{query}').get_json()['tasks'])

    assert titles('') == ['A', 'B', 'C']
    assert titles('?projectSlug=shop') == ['A', 'B']
    assert titles('?status=todo') == ['A', 'C']
    assert titles('?projectSlug=shop&priority=high') == ['A']
    assert titles('?projectSlug=unknown') == []


def test_update_task(admin_client, make_project, make_task):
    task = make_task(make_project('shop'), 'Deploy')
    response = admin_client.patch('/api/admin/crm/tasks', json={
        'id': task.id, 'status': 'in-progress', 'order': 3, 'dueDate': None,
    })
    assert response.status_code == 200
    data = response.get_json()['task']
    assert data['status'] == 'in-progress'
    assert data['order'] == 3
    assert data['dueDate'] is None


def test_update_task_errors(admin_client):
    assert admin_client.patch('/api/admin/crm/tasks', json={'status': 'done'}).status_code == 400
    assert admin_client.patch('/api/admin/crm/tasks', json={'id': 404}).status_code == 404


def test_delete_task(admin_client, make_project, make_task):
    task = make_task(make_project('shop'))
    assert admin_client.delete('/api/admin/crm/tasks').status_code == 400
    assert admin_client.delete(f'/api/admin/crm/tasks?id={task.id}').status_code == 200
    assert CrmTask.query.count() == 0


def test_activity_log(admin_client, make_project):
    make_project('shop')
    response = admin_client.post('/api/admin/activity', json={
        'projectSlug': 'shop', 'type': 'deploy', 'title': 'Released v1', 'details': 'All green',
    })
    assert response.status_code == 201
    admin_client.post('/api/admin/activity', json={'type': 'note', 'title': 'General note'})

    logs = admin_client.get('/api/admin/activity').get_json()['logs']
    assert len(logs) == 2
    deploy = next(log for log in logs if log['type'] == 'deploy')
    assert deploy['project'] == {'title': 'Shop', 'slug': 'shop'}
    assert deploy['author'] == 'manual'

    note = admin_client.get('/api/admin/activity?type=note').get_json()['logs']
    assert [log['title'] for log in note] == ['General note']
    assert note[0]['project'] is None

    assert len(admin_client.get('/api/admin/activity?projectSlug=shop').get_json()['logs']) == 1
    assert admin_client.get('/api/admin/activity?projectSlug=missing').get_json()['logs'] == []
    assert len(admin_client.get('/api/admin/activity?limit=1').get_json()['logs']) == 1


def test_activity_requires_type_and_title(admin_client):
    assert admin_client.post('/api/admin/activity', json={'title': 'x'}).status_code == 400
    assert ActivityLog.query.count() == 0


def test_workspaces_show_last_activity(admin_client, make_project):
    project = make_project('shop', local_path='/home/dev/shop')
    make_project('idle')
    db.session.add(ActivityLog(project_id=project.id, type='commit', title='Fix cart'))
    db.session.commit()

    rows = {row['slug']: row for row in admin_client.get('/api/admin/workspaces').get_json()['projects']}
    assert rows['shop']['lastActivityType'] == 'commit'
    assert rows['shop']['localPath'] == '/home/dev/shop'
    assert rows['shop']['lastActivity'].endswith('Z')
    assert rows['idle']['lastActivity'] is None


def test_dashboard(admin_client, make_project, make_task, make_lead):
    project = make_project('shop')
    make_task(project, 'Late', status='todo', due_date=utc_now() - timedelta(days=2))
    make_task(project, 'Soon', status='in-progress', due_date=utc_now() + timedelta(days=2))
    make_task(project, 'Shipped', status='done', due_date=utc_now() - timedelta(days=5))
    make_lead(status='won', deal_value=5000, read=True)
    make_lead(status='proposal', deal_value=2000, read=True)
    make_lead(email='new@example.com')

    data = admin_client.get('/api/admin/dashboard').get_json()
    assert data['projectCount'] == 1
    assert data['totalLeads'] == 3
    assert data['unreadLeads'] == 1
    assert data['pipeline']['won'] == 1
    assert data['pipeline']['new'] == 1
    assert [lead['email'] for lead in data['hotLeads']] == ['new@example.com']
    assert [task['title'] for task in data['upcomingDeadlines']] == ['Late', 'Soon']
    assert data['overdueTasks'] == 1
    assert data['tasksInProgress'] == 1
    assert data['tasksDone'] == 1
    assert data['wonRevenue'] == 5000
    assert data['pipelineValue'] == 2000


def test_settings_round_trip(admin_client):
    assert admin_client.get('/api/admin/settings').get_json() == []
    response = admin_client.put('/api/admin/settings', json={'settings': [
        {'key': 'hero_title', 'value': 'Hello'},
        {'key': '', 'value': 'ignored'},
    ]})
    assert response.status_code == 200
    admin_client.put('/api/admin/settings', json={'settings': [{'key': 'hero_title', 'value': 'Updated'}]})

    settings = admin_client.get('/api/admin/settings').get_json()
    assert [(s['key'], s['value']) for s in settings] == [('hero_title', 'Updated')]
    assert SiteSetting.query.count() == 1


def test_settings_payload_must_be_a_list(admin_client):
    assert admin_client.put('/api/admin/settings', json={'settings': 'nope'}).status_code == 400


def test_settings_read_failure_returns_empty_list(admin_client):
    with patch('app.SiteSetting') as setting_model:
        setting_model.query.all.side_effect = OperationalError('SELECT', {}, Exception('db down'))
        response = admin_client.get('/api/admin/settings')
    assert response.status_code == 200
    assert response.get_json() == []


def test_archived_leads_are_counted(admin_client, make_lead):
    lead = make_lead()
    admin_client.patch(f'/api/contact/{lead.id}', json={'status': 'archived'})
    data = admin_client.get('/api/admin/dashboard').get_json()
    assert data['pipeline']['archived'] == 1
    assert data['pipeline']['new'] == 0
