import json

from . import db, utc_now, isoformat


def load_json_list(raw):
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return []
    return value if isinstance(value, list) else []


def dump_json_list(value):
    # Strings are assumed to be already encoded
    if isinstance(value, str):
        return value
    return json.dumps(list(value or []))


class Project(db.Model):
    __tablename__ = 'projects'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(200), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, nullable=False, default='')
    category = db.Column(db.String(50), nullable=False, default='web')
    progress = db.Column(db.Integer, nullable=False, default=0)
    technologies = db.Column(db.Text, nullable=False, default='[]')
    images = db.Column(db.Text, nullable=False, default='[]')
    github_url = db.Column(db.String(500))
    demo_url = db.Column(db.String(500))
    featured = db.Column(db.Boolean, nullable=False, default=False)
    order = db.Column(db.Integer, nullable=False, default=0)
    local_path = db.Column(db.String(500), nullable=False, default='')
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    roadmap_items = db.relationship("RoadmapItem", back_populates="project", cascade="all, delete-orphan",
                                    order_by="RoadmapItem.order")
    crm_tasks = db.relationship("CrmTask", back_populates="project", cascade="all, delete-orphan")
    activity_logs = db.relationship("ActivityLog", back_populates="project", cascade="all, delete-orphan",
                                    order_by="ActivityLog.created_at.desc()")

    def to_dict(self, include_roadmap=True):
        data = {
            'id': self.id,
            'title': self.title,
            'slug': self.slug,
            'description': self.description,
            'category': self.category,
            'progress': self.progress,
            'technologies': load_json_list(self.technologies),
            'images': load_json_list(self.images),
            'githubUrl': self.github_url,
            'demoUrl': self.demo_url,
            'featured': self.featured,
            'order': self.order,
            'localPath': self.local_path,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
        if include_roadmap:
            data['roadmapItems'] = [item.to_dict() for item in self.roadmap_items]
        return data


class RoadmapItem(db.Model):
    __tablename__ = 'roadmap_items'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(20), nullable=False, default='planned')
    order = db.Column(db.Integer, nullable=False, default=0)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False)

    project = db.relationship("Project", back_populates="roadmap_items")

    def to_dict(self):
        return {'id': self.id, 'title': self.title, 'status': self.status, 'order': self.order}
