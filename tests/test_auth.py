"""
Authentication tests.

Verifies:
- Signup validates input, rejects duplicates and never returns secrets
- Login issues a token that replaces any earlier one
- Logout and account deletion revoke the stored token
- Google sign-in creates or links accounts
"""

from marketplace.models.user import AuthProvider

from conftest import DEFAULT_PASSWORD


SIGNUP = {
    'username': 'alice',
    'email': 'Alice@Example.com',
    'password': DEFAULT_PASSWORD,
    'address': 'Jl. Merdeka 1',
    'phone_number': '+628123456789'
}


class TestSignup:

    def test_signup_returns_token_and_public_user(self, client, services):
        resp = client.post('/signup', json=SIGNUP)
        assert resp.status_code == 201
        body = resp.json
        assert body['status'] == 201
        assert body['data']['token']
        user = body['data']['user']
        assert user['email'] == 'alice@example.com'
        assert user['role'] == 'user'
        assert 'password' not in user
        assert 'access_token' not in user

        stored = services.users.find_by_email('alice@example.com')
        assert stored.password != DEFAULT_PASSWORD
        assert stored.verify_password(DEFAULT_PASSWORD)

    def test_duplicate_email_conflicts(self, client):
        client.post('/signup', json=SIGNUP)
        resp = client.post('/signup', json={**SIGNUP, 'username': 'alice2'})
        assert resp.status_code == 409

    def test_duplicate_username_conflicts(self, client):
        client.post('/signup', json=SIGNUP)
        resp = client.post('/signup', json={**SIGNUP, 'email': 'other@example.com'})
        assert resp.status_code == 409

    def test_signup_cannot_create_admin(self, client, services):
        resp = client.post('/signup', json={**SIGNUP, 'role': 'admin'})
        assert resp.status_code == 400
        assert services.users.find_by_email('alice@example.com') is None

    def test_weak_password_lists_field_errors(self, client):
        resp = client.post('/signup', json={**SIGNUP, 'password': 'short'})
        assert resp.status_code == 400
        fields = [e['field'] for e in resp.json['data']['errors']]
        assert 'password' in fields

    def test_missing_body(self, client):
        resp = client.post('/signup')
        assert resp.status_code == 400


class TestLogin:

    def test_login_with_valid_credentials(self, client, buyer):
        resp = client.post('/login', json={'email': 'buyer@example.com', 'password': DEFAULT_PASSWORD})
        assert resp.status_code == 200
        assert resp.json['data']['token']
        assert resp.json['data']['user']['username'] == 'buyer'

    def test_wrong_password_is_unauthorized(self, client, buyer):
        resp = client.post('/login', json={'email': 'buyer@example.com', 'password': 'Wrong1!pass'})
        assert resp.status_code == 401

    def test_unknown_email_is_unauthorized(self, client):
        resp = client.post('/login', json={'email': 'nobody@example.com', 'password': DEFAULT_PASSWORD})
        assert resp.status_code == 401

    def test_new_login_revokes_previous_token(self, client, buyer):
        _, old_headers = buyer
        client.post('/login', json={'email': 'buyer@example.com', 'password': DEFAULT_PASSWORD})

        resp = client.get('/me-profile', headers=old_headers)
        assert resp.status_code == 401


class TestTokenLifecycle:

    def test_missing_token(self, client):
        assert client.get('/me-profile').status_code == 401

    def test_garbage_token(self, client):
        resp = client.get('/me-profile', headers={'Authorization': 'Bearer not-a-jwt'})
        assert resp.status_code == 401

    def test_logout_revokes_token(self, client, buyer):
        _, headers = buyer
        assert client.post('/logout', headers=headers).status_code == 200
        assert client.get('/me-profile', headers=headers).status_code == 401

    def test_deleted_account_cannot_authenticate(self, client, services, buyer):
        user, headers = buyer
        assert client.delete('/me-profile', headers=headers).status_code == 200

        assert client.get('/me-profile', headers=headers).status_code == 401
        assert services.users.find_by_id(user.id) is None
        assert services.users.get_raw(user.id).deleted_at is not None


class TestGoogleLogin:

    def test_creates_federated_account(self, client, services, google_auth):
        google_auth.identities['good-token'] = {
            'uid': 'google-123', 'email': 'gina@example.com', 'name': 'Gina', 'picture': 'https://img/gina.png'
        }
        resp = client.post('/google-login', json={'idToken': 'good-token'})
        assert resp.status_code == 200

        user = services.users.find_by_google_uid('google-123')
        assert user.email == 'gina@example.com'
        assert user.auth_provider == AuthProvider.google.value
        assert user.password is None

        login = client.post('/login', json={'email': 'gina@example.com', 'password': DEFAULT_PASSWORD})
        assert login.status_code == 400

    def test_links_existing_account_by_email(self, client, services, google_auth, buyer):
        user, _ = buyer
        google_auth.identities['good-token'] = {
            'uid': 'google-456', 'email': 'buyer@example.com', 'name': 'Buyer', 'picture': None
        }
        resp = client.post('/google-login', json={'id_token': 'good-token'})
        assert resp.status_code == 200
        assert resp.json['data']['user']['id'] == user.id
        assert services.users.find_by_id(user.id).google_uid == 'google-456'

    def test_invalid_id_token(self, client):
        resp = client.post('/google-login', json={'idToken': 'forged'})
        assert resp.status_code == 401


class TestCreateAdminCommand:

    def _invoke(self, app, *args):
        return app.test_cli_runner().invoke(args=['create-admin', *args])

    def test_creates_admin(self, app, services):
        result = self._invoke(app, '--email', 'root@example.com', '--username', 'root', '--password', DEFAULT_PASSWORD)
        assert result.exit_code == 0, result.output
        admin = services.users.find_by_email('root@example.com')
        assert admin.role == 'admin'
        assert admin.verify_password(DEFAULT_PASSWORD)

    def test_refuses_existing_email(self, app, buyer):
        result = self._invoke(app, '--email', 'buyer@example.com', '--username', 'root', '--password', DEFAULT_PASSWORD)
        assert result.exit_code != 0
        assert 'already exists' in result.output

    def test_refuses_weak_password(self, app, services):
        result = self._invoke(app, '--email', 'root@example.com', '--username', 'root', '--password', 'weak')
        assert result.exit_code != 0
        assert services.users.find_by_email('root@example.com') is None
