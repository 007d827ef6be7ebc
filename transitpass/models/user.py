import uuid
import bcrypt
from datetime import datetime, timezone
from transitpass.extensions import db


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.Text, nullable=False)
    phone_number = db.Column(db.String(20), unique=True, nullable=True)
    # one reference per user; re-registering a face overwrites it
    face_image_path = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    tickets = db.relationship('Ticket', backref='user', lazy=True, cascade='all, delete-orphan')

    def set_password(self, password):
        self.password_hash = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

    def check_password(self, password):
        candidate = password.encode('utf-8')
        if len(candidate) > 72:
            return False
        return bcrypt.checkpw(candidate, self.password_hash.encode('utf-8'))

    def to_dict(self, include_phone=False):
        data = {
            'id': str(self.id),
            'name': self.name,
            'email': self.email,
        }
        if include_phone:
            data['phoneNumber'] = self.phone_number
        return data
