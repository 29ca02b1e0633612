'''HTTP surface: JSON APIs, post pages and the claim redirects.'''
from config import REDIRECT_COOKIE, SESSION_COOKIE
from models import Post


def publish(client, **body):
    body.setdefault('content', '# Hello\nWorld')
    body.setdefault('slug', 'my-post')
    return client.post('/publish', json=body)


def test_index(client):
    assert client.get('/').status_code == 200


def test_check_slug_endpoint(client):
    assert client.get('/api/check-slug/my-post').get_json() == {
        'available': True,
        'message': 'This slug is available',
    }
    publish(client)
    assert client.get('/api/check-slug/my-post').get_json()['available'] is False
    assert client.get('/api/check-slug/UPPER').get_json()['available'] is False


def test_preview(client):
    response = client.post('/api/preview', json={'content': '**bold**'})
    assert response.get_json() == {'success': True, 'html': '<p><strong>bold</strong></p>\n'}
    response = client.post('/api/preview', json={'content': '<b>raw</b>', 'format': 'html'})
    assert response.get_json()['html'] == '<b>raw</b>'
    assert client.post('/api/preview', json={}).status_code == 400
    assert Post.query.count() == 0


def test_publish(client):
    response = publish(client)
    assert response.status_code == 200
    data = response.get_json()
    assert data['success'] is True
    assert data['slug'] == 'my-post'
    assert data['public_url'] == '/my-post'
    assert data['edit_url'] == f"/my-post/edit/{data['edit_token']}"
    assert isinstance(data['post_id'], int)


def test_publish_errors(client):
    assert publish(client, content='').status_code == 400
    assert publish(client, slug='Bad Slug').status_code == 400
    assert publish(client, format='docx').status_code == 400
    assert client.post('/publish', data='not json').status_code == 400
    assert publish(client).status_code == 200
    conflict = publish(client, content='other')
    assert conflict.status_code == 409
    assert 'already taken' in conflict.get_json()['error']


def test_publish_as_logged_in_user(client, make_user):
    user, session_id = make_user()
    client.set_cookie(SESSION_COOKIE, session_id)
    publish(client)
    assert Post.query.filter_by(slug='my-post').one().author_id == user.id


def test_show_markdown_page(client):
    publish(client)
    response = client.get('/my-post')
    assert response.status_code == 200
    page = response.get_data(as_text=True)
    assert '<title>Hello</title>' in page
    assert '<meta name="description" content="World">' in page
    assert '<h1 id="hello">Hello</h1>' in page
    assert '1 views' in page
    assert client.get('/my-post').status_code == 200
    assert Post.query.filter_by(slug='my-post').one().view_count == 2


def test_show_html_verbatim(client):
    content = '<!DOCTYPE html><html><body><h1>Mine</h1></body></html>'
    publish(client, content=content, format='html')
    response = client.get('/my-post')
    assert response.mimetype == 'text/html'
    assert response.get_data(as_text=True) == content


def test_show_missing(client):
    response = client.get('/missing')
    assert response.status_code == 404
    assert 'Post not found' in response.get_data(as_text=True)


def test_edit_page(client):
    token = publish(client).get_json()['edit_token']
    response = client.get(f'/my-post/edit/{token}')
    assert response.status_code == 200
    assert '# Hello\nWorld' in response.get_data(as_text=True)


def test_edit_bad_links_look_the_same(client):
    publish(client)
    wrong_token = client.get('/my-post/edit/wrong')
    wrong_slug = client.get('/nothing/edit/wrong')
    assert wrong_token.status_code == wrong_slug.status_code == 404
    assert wrong_token.get_data() == wrong_slug.get_data()


def test_update(client):
    token = publish(client).get_json()['edit_token']
    response = client.post(f'/my-post/edit/{token}', json={'content': '# Updated'})
    assert response.status_code == 200
    data = response.get_json()
    assert data['success'] is True
    assert data['updated_at']
    post = Post.query.filter_by(slug='my-post').one()
    assert post.title == 'Updated'
    assert post.format == 'markdown'
    assert '<h1 id="updated">Updated</h1>' in client.get('/my-post').get_data(as_text=True)


def test_update_errors(client):
    token = publish(client).get_json()['edit_token']
    assert client.post(f'/my-post/edit/{token}', json={}).status_code == 400
    wrong = client.post('/my-post/edit/wrong', json={'content': 'x'})
    assert wrong.status_code == 404
    assert wrong.get_json() == {'error': 'Invalid edit link'}


def test_success_page(client, make_user):
    assert client.get('/success').location == '/'
    assert client.get('/success?slug=my-post').location == '/'
    token = publish(client).get_json()['edit_token']
    page = client.get(f'/success?slug=my-post&token={token}').get_data(as_text=True)
    assert 'Claim this post' in page
    _, session_id = make_user()
    client.set_cookie(SESSION_COOKIE, session_id)
    client.get(f'/claim/my-post?token={token}')
    page = client.get(f'/success?slug=my-post&token={token}').get_data(as_text=True)
    assert 'linked to your account' in page


def test_claim_without_token_or_with_bad_token(client):
    publish(client)
    missing = client.get('/claim/my-post')
    assert missing.status_code == 400
    assert 'Invalid claim link' in missing.get_data(as_text=True)
    assert client.get('/claim/my-post?token=wrong').status_code == 404
    assert client.get('/claim/nothing?token=wrong').status_code == 404


def test_claim_anonymous_redirects_to_register(client):
    token = publish(client).get_json()['edit_token']
    response = client.get(f'/claim/my-post?token={token}')
    assert response.status_code == 302
    assert response.location == '/register'
    assert 'Max-Age=900' in response.headers['Set-Cookie']
    assert client.get_cookie(REDIRECT_COOKIE).value == f'/claim/my-post?token={token}'
    assert Post.query.filter_by(slug='my-post').one().author_id is None


def test_claim_with_stale_session_redirects_to_register(client):
    token = publish(client).get_json()['edit_token']
    client.set_cookie(SESSION_COOKIE, 'expired-session')
    assert client.get(f'/claim/my-post?token={token}').location == '/register'


def test_claim_logged_in(client, make_user):
    token = publish(client).get_json()['edit_token']
    user, session_id = make_user()
    client.set_cookie(SESSION_COOKIE, session_id)
    client.set_cookie(REDIRECT_COOKIE, f'/claim/my-post?token={token}')
    response = client.get(f'/claim/my-post?token={token}')
    assert response.status_code == 302
    assert response.location == f'/my-post/edit/{token}'
    assert client.get_cookie(REDIRECT_COOKIE) is None
    assert Post.query.filter_by(slug='my-post').one().author_id == user.id


def test_claim_is_idempotent(client, make_user):
    token = publish(client).get_json()['edit_token']
    owner, owner_session = make_user('Owner')
    _, other_session = make_user('Other')
    client.set_cookie(SESSION_COOKIE, owner_session)
    client.get(f'/claim/my-post?token={token}')
    client.set_cookie(SESSION_COOKIE, other_session)
    response = client.get(f'/claim/my-post?token={token}')
    assert response.location == f'/my-post/edit/{token}'
    client.delete_cookie(SESSION_COOKIE)
    assert client.get(f'/claim/my-post?token={token}').location == f'/my-post/edit/{token}'
    assert Post.query.filter_by(slug='my-post').one().author_id == owner.id


def test_unknown_nested_path(client):
    assert client.get('/a/b/c').status_code == 404


def test_update_bad_links_look_the_same(client):
    publish(client)
    wrong_token = client.post('/my-post/edit/wrong', json={'content': 'x'})
    wrong_slug = client.post('/nothing/edit/wrong', json={'content': 'x'})
    assert wrong_token.status_code == wrong_slug.status_code == 404
    assert wrong_token.get_json() == wrong_slug.get_json()


def test_update_timestamp_is_utc_iso(client):
    token = publish(client).get_json()['edit_token']
    updated_at = client.post(f'/my-post/edit/{token}', json={'content': 'x'}).get_json()['updated_at']
    assert updated_at.endswith('Z')
    assert 'T' in updated_at


def test_preview_render_failure_returns_json_error(client, service, monkeypatch):
    def broken(content):
        raise ValueError('engine exploded')
    monkeypatch.setattr(service.renderer, 'render_markdown', broken)
    response = client.post('/api/preview', json={'content': '# hi'})
    assert response.status_code == 500
    assert response.get_json() == {'error': 'Failed to preview markdown'}


def test_show_render_failure_returns_error_page(client, service, monkeypatch):
    publish(client)
    def broken(content):
        raise ValueError('engine exploded')
    monkeypatch.setattr(service.renderer, 'render_markdown', broken)
    response = client.get('/my-post')
    assert response.status_code == 500
    assert 'Error loading post' in response.get_data(as_text=True)
    assert 'engine exploded' not in response.get_data(as_text=True)


def test_unexpected_error_on_api_route_is_json(client, service, monkeypatch):
    def broken(slug):
        raise RuntimeError('boom')
    monkeypatch.setattr(service, 'check_slug', broken)
    response = client.get('/api/check-slug/anything')
    assert response.status_code == 500
    assert response.get_json() == {'error': 'Something went wrong. Please try again.'}


def test_wrong_method_is_not_swallowed(client):
    assert client.delete('/publish').status_code == 405
