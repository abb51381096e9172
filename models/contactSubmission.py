from . import db, utc_now, isoformat

LEAD_STATUSES = ('new', 'contacted', 'qualified', 'proposal', 'won', 'lost', 'archived')


class ContactSubmission(db.Model):
    __tablename__ = 'contact_submissions'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, default='')
    email = db.Column(db.String(120), nullable=False)
    subject = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    budget = db.Column(db.String(50), nullable=False, default='')
    service_type = db.Column(db.String(100), nullable=False, default='')
    status = db.Column(db.String(20), nullable=False, default='new')
    label = db.Column(db.String(20), nullable=False, default='')
    notes = db.Column(db.Text, nullable=False, default='')
    deal_value = db.Column(db.Integer, nullable=False, default=0)
    utm_source = db.Column(db.String(100), nullable=False, default='')
    utm_medium = db.Column(db.String(100), nullable=False, default='')
    utm_campaign = db.Column(db.String(100), nullable=False, default='')
    read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'subject': self.subject,
            'message': self.message,
            'budget': self.budget,
            'serviceType': self.service_type,
            'status': self.status,
            'label': self.label,
            'notes': self.notes,
            'dealValue': self.deal_value,
            'utmSource': self.utm_source,
            'utmMedium': self.utm_medium,
            'utmCampaign': self.utm_campaign,
            'read': self.read,
            'createdAt': isoformat(self.created_at),
        }
