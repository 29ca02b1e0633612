import logging
from flask import Blueprint, Flask, current_app, jsonify, make_response, redirect, render_template, request, Response
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException
from typing import Union, Optional, Any, Mapping
from config import load_config, SESSION_COOKIE, REDIRECT_COOKIE, REDIRECT_COOKIE_MAX_AGE, REGISTER_URL
from errors import PostError, InternalError
from models import db, User
from posts import PostService, ClaimOutcome, PublishedPost, ShownPost, EditablePost, SlugAvailability, edit_url, claim_url, format_date
from rendering import ContentRenderer, RendererConfig
from store import PostStore

bp : Blueprint = Blueprint('posts', __name__)


def service() -> PostService:
    return current_app.extensions['post_service']


def current_user() -> Optional[User]:
    '''User behind the auth_id session cookie, if any.'''
    return service().store.find_session_user(request.cookies.get(SESSION_COOKIE))


def wants_json() -> bool:
    return request.method == 'POST' or request.path.startswith('/api/')


def request_body() -> dict:
    body : Any = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def user_payload(user:Optional[User]) -> Optional[dict]:
    if user is None:
        return None
    return {'id': user.id, 'name': user.name, 'email': user.email}


@bp.route('/')
def index() -> Union[str, Any]:
    return render_template('index.html', user=current_user())


@bp.route('/api/check-slug/<slug>')
def check_slug(slug:str) -> Union[Response, Any]:
    try:
        result : SlugAvailability = service().check_slug(slug)
    except InternalError:
        return jsonify(available=False, message='Error checking slug availability'), 500
    return jsonify(available=result.available, message=result.message)


@bp.route('/api/preview', methods=['POST'])
def preview() -> Union[Response, Any]:
    body : dict = request_body()
    content : Optional[str] = body.get('content')
    if not content or not isinstance(content, str):
        return jsonify(error='Content is required'), 400
    return jsonify(success=True, html=service().renderer.preview(content, body.get('format')))


@bp.route('/publish', methods=['POST'])
def publish() -> Union[Response, Any]:
    body : dict = request_body()
    user : Optional[User] = current_user()
    published : PublishedPost = service().create(
        body.get('content'),
        body.get('slug'),
        body.get('format'),
        author_id=user.id if user else None,
    )
    return jsonify(
        success=True,
        post_id=published.post_id,
        slug=published.slug,
        public_url=published.public_url,
        edit_url=published.edit_url,
        edit_token=published.edit_token,
    )


@bp.route('/success')
def success() -> Union[str, Any]:
    slug : str = request.args.get('slug', '')
    token : str = request.args.get('token', '')
    if not slug or not token:
        return redirect('/')
    return render_template(
        'success.html',
        slug=slug,
        edit_token=token,
        user=current_user(),
        is_claimed=service().is_claimed(slug, token),
    )


@bp.route('/<slug>')
def show(slug:str) -> Union[str, Any]:
    shown : ShownPost = service().show(slug)
    if shown.is_raw_html:
        return Response(shown.post.content, mimetype='text/html')
    post = shown.post
    return render_template(
        'post.html',
        title=shown.rendered.title,
        description=shown.rendered.description,
        content=shown.rendered.html,
        view_count=post.view_count,
        created_at=format_date(post.created_at),
        updated_at=format_date(post.updated_at),
        author={'name': shown.author.name} if shown.author else None,
    )


@bp.route('/<slug>/edit/<token>')
def edit(slug:str, token:str) -> Union[str, Any]:
    editable : EditablePost = service().edit(slug, token)
    post = editable.post
    return render_template(
        'edit.html',
        post=post,
        post_format=post.post_format,
        user=current_user(),
        author=user_payload(editable.author),
        edit_token=token,
    )


@bp.route('/<slug>/edit/<token>', methods=['POST'])
def update(slug:str, token:str) -> Union[Response, Any]:
    body : dict = request_body()
    post = service().update(slug, token, body.get('content'), body.get('format'))
    return jsonify(
        success=True,
        message='Post updated successfully',
        updated_at=post.updated_at.isoformat(timespec='milliseconds') + 'Z',
    )


@bp.route('/claim/<slug>')
def claim(slug:str) -> Union[Response, Any]:
    token : str = request.args.get('token', '')
    outcome : ClaimOutcome = service().claim(slug, token, current_user())
    if outcome is ClaimOutcome.LOGIN_REQUIRED:
        response : Response = redirect(REGISTER_URL)
        response.set_cookie(REDIRECT_COOKIE, claim_url(slug, token), max_age=REDIRECT_COOKIE_MAX_AGE, httponly=True, samesite='Lax')
        return response
    response = redirect(edit_url(slug, token))
    if outcome is ClaimOutcome.CLAIMED:
        response.delete_cookie(REDIRECT_COOKIE)
    return response


@bp.app_errorhandler(PostError)
def post_error(error:PostError) -> Union[Response, Any]:
    if isinstance(error, InternalError):
        current_app.logger.error('Request to %s failed: %s', request.path, error.message, exc_info=error.__cause__)
    if wants_json():
        return jsonify(error=error.message), error.status_code
    return make_response(render_template('error.html', message=error.message), error.status_code)


@bp.app_errorhandler(SQLAlchemyError)
def database_error(error:SQLAlchemyError) -> Union[Response, Any]:
    db.session.rollback()
    current_app.logger.exception('Unhandled database error: %s', error)
    return post_error(InternalError('Something went wrong. Please try again.'))


@bp.app_errorhandler(Exception)
def unexpected_error(error:Exception) -> Union[Response, Any]:
    if isinstance(error, HTTPException):
        return error
    current_app.logger.exception('Unhandled error: %s', error)
    return post_error(InternalError('Something went wrong. Please try again.'))


@bp.app_errorhandler(404)
def not_found(_error) -> Union[str, Any]:
    if wants_json():
        return jsonify(error='Not found'), 404
    return render_template('error.html', message='Page not found'), 404


def create_app(overrides:Optional[Mapping[str, Any]] = None) -> Flask:
    app : Flask = Flask(__name__)
    app.config.update(load_config())
    if overrides:
        app.config.update(overrides)
    app.logger.setLevel(getattr(logging, app.config['LOG_LEVEL'], logging.INFO))

    db.init_app(app)
    renderer : ContentRenderer = ContentRenderer(RendererConfig())
    app.extensions['post_service'] = PostService(PostStore(db), renderer)
    app.register_blueprint(bp)

    with app.app_context():
        db.create_all()
    return app


if __name__ == '__main__':
    app : Flask = create_app()
    port : int = app.config['PORT']
    print(f'Markpost server running on port {port}')
    app.run(host=app.config['HOST'], port=port)
