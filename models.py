from flask_sqlalchemy import SQLAlchemy
from datetime import datetime

db = SQLAlchemy()


class PostFormat:
    MARKDOWN : str = 'markdown'
    HTML : str = 'html'
    ALL : tuple[str, ...] = (MARKDOWN, HTML)


class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)


class Session(db.Model):
    __tablename__ = 'sessions'
    id = db.Column(db.String(255), primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)


class Post(db.Model):
    __tablename__ = 'posts'
    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(255), unique=True, nullable=False)
    content = db.Column(db.Text, nullable=False)
    title = db.Column(db.Text, nullable=False)
    format = db.Column(db.String(20), nullable=False, default=PostFormat.MARKDOWN, server_default=PostFormat.MARKDOWN)
    edit_token = db.Column(db.String(36), unique=True, nullable=False)
    author_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    view_count = db.Column(db.Integer, nullable=False, default=0, server_default='0')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_viewed_at = db.Column(db.DateTime, nullable=True)

    @property
    def post_format(self) -> str:
        # Rows written before formats existed are markdown.
        return self.format or PostFormat.MARKDOWN

    @property
    def is_claimed(self) -> bool:
        return self.author_id is not None
