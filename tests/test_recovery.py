"""
Password recovery tests.

Verifies:
- Reset requests never reveal whether an account exists
- Reset tokens are single use
- Changing a password requires the current one
"""

from conftest import DEFAULT_PASSWORD

NEW_PASSWORD = "Changed2@pass"


class TestPasswordReset:

    def test_unknown_email_gets_same_answer(self, client, mailer):
        resp = client.post('/request-password-reset', json={'email': 'ghost@example.com'})
        assert resp.status_code == 200
        assert mailer.sent == []

    def test_reset_flow(self, client, services, mailer, buyer):
        resp = client.post('/request-password-reset', json={'email': 'buyer@example.com'})
        assert resp.status_code == 200
        assert len(mailer.sent) == 1
        assert mailer.sent[0]['to'] == 'buyer@example.com'

        token = services.users.find_by_email('buyer@example.com').reset_password_token
        assert token in mailer.sent[0]['body']

        resp = client.post('/reset-password', json={'token': token, 'newPassword': NEW_PASSWORD})
        assert resp.status_code == 200

        login = client.post('/login', json={'email': 'buyer@example.com', 'password': NEW_PASSWORD})
        assert login.status_code == 200

        reused = client.post('/reset-password', json={'token': token, 'newPassword': 'Another3#pass'})
        assert reused.status_code == 400

    def test_expired_token_is_rejected(self, client, services, buyer):
        user, _ = buyer
        services.users.set_reset_password_token(user.id, 'expired-token', '2000-01-01T00:00:00+00:00')

        resp = client.post('/reset-password', json={'token': 'expired-token', 'newPassword': NEW_PASSWORD})
        assert resp.status_code == 400


class TestChangePassword:

    def _payload(self, current=DEFAULT_PASSWORD, new=NEW_PASSWORD, confirm=None):
        return {'currentPassword': current, 'newPassword': new, 'confirmPassword': confirm or new}

    def test_change_password(self, client, mailer, buyer):
        _, headers = buyer
        resp = client.post('/change-password', json=self._payload(), headers=headers)
        assert resp.status_code == 200
        assert len(mailer.sent) == 1

        login = client.post('/login', json={'email': 'buyer@example.com', 'password': NEW_PASSWORD})
        assert login.status_code == 200

    def test_wrong_current_password(self, client, buyer):
        _, headers = buyer
        resp = client.post('/change-password', json=self._payload(current='Wrong1!pass'), headers=headers)
        assert resp.status_code == 401

    def test_confirmation_mismatch(self, client, buyer):
        _, headers = buyer
        resp = client.post('/change-password', json=self._payload(confirm='Different4$pass'), headers=headers)
        assert resp.status_code == 400

    def test_new_password_must_differ(self, client, buyer):
        _, headers = buyer
        resp = client.post('/change-password', json=self._payload(new=DEFAULT_PASSWORD), headers=headers)
        assert resp.status_code == 400
