import datetime
from functools import wraps
from typing import Any, Callable, Optional
from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from errors import ConflictError, InternalError
from models import Post, Session, User


def _guarded(message:str) -> Callable:
    '''Roll back and re-raise database failures as InternalError.'''
    def decorator(func:Callable) -> Callable:
        @wraps(func)
        def wrapper(self:'PostStore', *args:Any, **kwargs:Any) -> Any:
            try:
                return func(self, *args, **kwargs)
            except SQLAlchemyError as exc:
                self.db.session.rollback()
                current_app.logger.exception('%s: %s', message, exc)
                raise InternalError(message) from exc
        return wrapper
    return decorator


class PostStore:
    '''Persistence for posts, backed by a Flask-SQLAlchemy session.'''

    def __init__(self, db:Any) -> None:
        self.db = db

    @_guarded('Failed to look up post')
    def slug_exists(self, slug:str) -> bool:
        return self.db.session.query(Post.id).filter(Post.slug == slug).first() is not None

    @_guarded('Failed to look up post')
    def find_by_slug(self, slug:str) -> Optional[Post]:
        return Post.query.filter_by(slug=slug).first()

    @_guarded('Failed to look up post')
    def find_by_slug_and_token(self, slug:str, token:str) -> Optional[Post]:
        return Post.query.filter_by(slug=slug, edit_token=token).first()

    def create(self, post:Post) -> Post:
        '''Insert a post; a unique-constraint hit on the slug becomes a ConflictError.'''
        self.db.session.add(post)
        try:
            self.db.session.commit()
        except IntegrityError as exc:
            self.db.session.rollback()
            if self.slug_exists(post.slug):
                raise ConflictError('This slug is already taken. Please choose another one.') from exc
            current_app.logger.exception('Error creating post: %s', exc)
            raise InternalError('Failed to create post. Please try again.') from exc
        except SQLAlchemyError as exc:
            self.db.session.rollback()
            current_app.logger.exception('Error creating post: %s', exc)
            raise InternalError('Failed to create post. Please try again.') from exc
        return post

    @_guarded('Failed to update post')
    def save(self, post:Post) -> Post:
        post.updated_at = datetime.datetime.utcnow()
        self.db.session.commit()
        return post

    @_guarded('Failed to record view')
    def record_view(self, post:Post) -> Post:
        '''Atomically bump the view counter in SQL, then reload the row.'''
        self.db.session.execute(
            update(Post)
            .where(Post.id == post.id)
            .values(view_count=Post.view_count + 1, last_viewed_at=datetime.datetime.utcnow())
        )
        self.db.session.commit()
        self.db.session.refresh(post)
        return post

    @_guarded('Failed to claim post')
    def assign_author(self, post:Post, user_id:int) -> bool:
        '''Set the author only if the post is still unclaimed. Returns False when someone got there first.'''
        result = self.db.session.execute(
            update(Post)
            .where(Post.id == post.id, Post.author_id.is_(None))
            .values(author_id=user_id, updated_at=datetime.datetime.utcnow())
        )
        self.db.session.commit()
        self.db.session.refresh(post)
        return result.rowcount == 1

    @_guarded('Failed to look up user')
    def find_user(self, user_id:Optional[int]) -> Optional[User]:
        if user_id is None:
            return None
        return self.db.session.get(User, user_id)

    @_guarded('Failed to look up session')
    def find_session_user(self, session_id:Optional[str]) -> Optional[User]:
        if not session_id:
            return None
        session : Optional[Session] = self.db.session.get(Session, session_id)
        if session is None:
            return None
        return self.db.session.get(User, session.user_id)
