from . import db, utc_now, isoformat

TASK_STATUSES = ('backlog', 'todo', 'in-progress', 'review', 'done')


class CrmTask(db.Model):
    __tablename__ = 'crm_tasks'
    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default='')
    type = db.Column(db.String(20), nullable=False, default='task')
    status = db.Column(db.String(20), nullable=False, default='backlog')
    priority = db.Column(db.String(20), nullable=False, default='medium')
    due_date = db.Column(db.DateTime)
    order = db.Column(db.Integer, nullable=False, default=0)
    author = db.Column(db.String(50), nullable=False, default='manual')
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    project = db.relationship("Project", back_populates="crm_tasks")

    def to_dict(self, include_project=True):
        data = {
            'id': self.id,
            'projectId': self.project_id,
            'title': self.title,
            'description': self.description,
            'type': self.type,
            'status': self.status,
            'priority': self.priority,
            'dueDate': isoformat(self.due_date),
            'order': self.order,
            'author': self.author,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
        if include_project:
            data['project'] = {'title': self.project.title, 'slug': self.project.slug}
        return data
