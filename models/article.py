from . import db, utc_now, isoformat


class Topic(db.Model):
    __tablename__ = 'topics'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    articles = db.relationship("Article", back_populates="topic")

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'createdAt': isoformat(self.created_at)}


class Article(db.Model):
    __tablename__ = 'articles'
    id = db.Column(db.Integer, primary_key=True)
    topic_id = db.Column(db.Integer, db.ForeignKey('topics.id'))
    title = db.Column(db.String(300), nullable=False)
    slug = db.Column(db.String(300), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, nullable=False, default='')
    content = db.Column(db.Text, nullable=False, default='')
    meta_title = db.Column(db.String(300))
    meta_description = db.Column(db.String(500))
    keywords = db.Column(db.String(500), nullable=False, default='')
    status = db.Column(db.String(20), nullable=False, default='DRAFT')
    published_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    topic = db.relationship("Topic", back_populates="articles")

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'slug': self.slug,
            'description': self.description,
            'content': self.content,
            'metaTitle': self.meta_title,
            'metaDescription': self.meta_description,
            'keywords': self.keywords,
            'status': self.status,
            'publishedAt': isoformat(self.published_at),
            'createdAt': isoformat(self.created_at),
            'topic': self.topic.to_dict() if self.topic is not None else None,
        }
