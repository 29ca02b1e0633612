import datetime
import enum
import uuid
from dataclasses import dataclass
from typing import Optional
from flask import current_app
from errors import NotFoundError, ValidationError, ConflictError
from models import Post, PostFormat, User
from rendering import ContentRenderer, RenderedOutput
from slugs import is_valid_slug
from store import PostStore

INVALID_SLUG : str = 'Slug must contain only lowercase letters, numbers, and hyphens'
SLUG_TAKEN : str = 'This slug is already taken'


@dataclass(frozen=True)
class SlugAvailability:
    available : bool
    message : str


@dataclass(frozen=True)
class PublishedPost:
    post_id : int
    slug : str
    public_url : str
    edit_url : str
    edit_token : str


@dataclass(frozen=True)
class ShownPost:
    post : Post
    rendered : Optional[RenderedOutput]
    author : Optional[User]

    @property
    def is_raw_html(self) -> bool:
        return self.rendered is None


@dataclass(frozen=True)
class EditablePost:
    post : Post
    author : Optional[User]


class ClaimOutcome(enum.Enum):
    ALREADY_CLAIMED = 'already_claimed'
    CLAIMED = 'claimed'
    LOGIN_REQUIRED = 'login_required'


def public_url(slug:str) -> str:
    return f'/{slug}'


def edit_url(slug:str, token:str) -> str:
    return f'/{slug}/edit/{token}'


def claim_url(slug:str, token:str) -> str:
    return f'/claim/{slug}?token={token}'


def format_date(value:Optional[datetime.datetime]) -> str:
    '''"October 19, 2026" style dates for post pages.'''
    if value is None:
        return ''
    return f'{value:%B} {value.day}, {value.year}'


class PostService:
    '''Create, show, edit, update and claim posts.

    Editing is authorized by the edit token alone. A wrong token and an unknown
    slug produce the same NotFoundError.
    '''

    def __init__(self, store:PostStore, renderer:ContentRenderer) -> None:
        self.store : PostStore = store
        self.renderer : ContentRenderer = renderer

    def _resolve_format(self, post_format:Optional[str], default:str) -> str:
        if not post_format:
            return default
        if post_format not in PostFormat.ALL:
            raise ValidationError("Invalid format. Must be 'markdown' or 'html'")
        return post_format

    def _derive_title(self, content:str, post_format:str, slug:str) -> str:
        return self.renderer.derive_title(content, post_format, slug)

    def _editable(self, slug:str, token:Optional[str], message:str) -> Post:
        post : Optional[Post] = None
        if token:
            post = self.store.find_by_slug_and_token(slug, token)
        if post is None:
            raise NotFoundError(message)
        return post

    def check_slug(self, slug:str) -> SlugAvailability:
        if not is_valid_slug(slug):
            return SlugAvailability(False, INVALID_SLUG)
        if self.store.slug_exists(slug):
            return SlugAvailability(False, SLUG_TAKEN)
        return SlugAvailability(True, 'This slug is available')

    def create(self, content:Optional[str], slug:Optional[str], post_format:Optional[str] = None, author_id:Optional[int] = None) -> PublishedPost:
        post_format = self._resolve_format(post_format, PostFormat.MARKDOWN)
        if not content or not slug:
            raise ValidationError('Content and slug are required')
        if not isinstance(content, str):
            raise ValidationError('Content must be a string')
        if not is_valid_slug(slug):
            raise ValidationError(INVALID_SLUG)
        if self.store.slug_exists(slug):
            raise ConflictError('This slug is already taken. Please choose another one.')

        token : str = str(uuid.uuid4())
        post : Post = Post(
            slug=slug,
            content=content,
            title=self._derive_title(content, post_format, slug),
            format=post_format,
            edit_token=token,
            author_id=author_id,
            view_count=0,
        )
        self.store.create(post)
        current_app.logger.info('Published post %s (format=%s, author=%s)', slug, post_format, author_id)
        return PublishedPost(
            post_id=post.id,
            slug=slug,
            public_url=public_url(slug),
            edit_url=edit_url(slug, token),
            edit_token=token,
        )

    def show(self, slug:str) -> ShownPost:
        '''Fetch a post for display. Every successful call counts as one view.'''
        post : Optional[Post] = self.store.find_by_slug(slug)
        if post is None:
            raise NotFoundError('Post not found')
        self.store.record_view(post)

        if post.post_format == PostFormat.HTML:
            return ShownPost(post=post, rendered=None, author=None)

        rendered : RenderedOutput = self.renderer.render(post.content, PostFormat.MARKDOWN, post.title)
        return ShownPost(post=post, rendered=rendered, author=self.store.find_user(post.author_id))

    def edit(self, slug:str, token:str) -> EditablePost:
        post : Post = self._editable(slug, token, 'Invalid edit link')
        return EditablePost(post=post, author=self.store.find_user(post.author_id))

    def update(self, slug:str, token:str, content:Optional[str], post_format:Optional[str] = None) -> Post:
        if not content:
            raise ValidationError('Content is required')
        if not isinstance(content, str):
            raise ValidationError('Content must be a string')
        post : Post = self._editable(slug, token, 'Invalid edit link')
        post_format = self._resolve_format(post_format, post.post_format)

        post.content = content
        post.format = post_format
        post.title = self._derive_title(content, post_format, post.slug)
        return self.store.save(post)

    def claim(self, slug:str, token:Optional[str], user:Optional[User]) -> ClaimOutcome:
        '''Attach the post to a logged-in user. Once claimed, a post never changes hands.'''
        if not token:
            raise ValidationError('Invalid claim link')
        post : Post = self._editable(slug, token, 'Invalid claim link')
        if post.is_claimed:
            return ClaimOutcome.ALREADY_CLAIMED
        if user is None:
            return ClaimOutcome.LOGIN_REQUIRED
        if not self.store.assign_author(post, user.id):
            return ClaimOutcome.ALREADY_CLAIMED
        current_app.logger.info('Post %s claimed by user %s', slug, user.id)
        return ClaimOutcome.CLAIMED

    def is_claimed(self, slug:str, token:str) -> bool:
        post : Optional[Post] = self.store.find_by_slug_and_token(slug, token)
        return post is not None and post.is_claimed
