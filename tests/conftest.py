import uuid
import pytest
from flask import Flask
from app import create_app
from models import db, Session, User
from posts import PostService


@pytest.fixture
def app() -> Flask:
    app : Flask = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SECRET_KEY': 'test',
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def service(app) -> PostService:
    return app.extensions['post_service']


@pytest.fixture
def make_user(app):
    '''Create a user with a live session; returns (user, session_id).'''
    def factory(name:str = 'Ada') -> tuple[User, str]:
        user : User = User(name=name, email=f'{name.lower()}-{uuid.uuid4().hex[:6]}@example.com')
        db.session.add(user)
        db.session.commit()
        session_id : str = uuid.uuid4().hex
        db.session.add(Session(id=session_id, user_id=user.id))
        db.session.commit()
        return user, session_id
    return factory
