from . import db, utc_now, isoformat


class ActivityLog(db.Model):
    __tablename__ = 'activity_logs'
    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'))
    type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    details = db.Column(db.Text, nullable=False, default='')
    author = db.Column(db.String(50), nullable=False, default='agent')
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now, index=True)

    project = db.relationship("Project", back_populates="activity_logs")

    def to_dict(self):
        project = None
        if self.project is not None:
            project = {'title': self.project.title, 'slug': self.project.slug}
        return {
            'id': self.id,
            'projectId': self.project_id,
            'type': self.type,
            'title': self.title,
            'details': self.details,
            'author': self.author,
            'createdAt': isoformat(self.created_at),
            'project': project,
        }
