import logging

import requests

logger = logging.getLogger(__name__)

TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
VALID_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


class FederatedAuthError(Exception):
    pass


class GoogleAuthService:
    """Verifies Google ID tokens through Google's tokeninfo endpoint."""

    def __init__(self, client_id=None, timeout=10, session=None):
        self.client_id = client_id
        self.timeout = timeout
        self.http = session or requests.Session()

    def verify_id_token(self, id_token):
        """Return ``{uid, email, name, picture}`` for a valid token."""
        try:
            response = self.http.get(TOKENINFO_URL, params={'id_token': id_token}, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Google token verification request failed: {str(e)}")
            raise FederatedAuthError(f"Could not reach Google: {str(e)}") from e

        if response.status_code != 200:
            raise FederatedAuthError("Invalid ID token")

        claims = response.json()
        if claims.get('iss') not in VALID_ISSUERS:
            raise FederatedAuthError("Invalid token issuer")
        if self.client_id and claims.get('aud') != self.client_id:
            raise FederatedAuthError("Token was not issued for this application")
        if str(claims.get('email_verified')).lower() != 'true':
            raise FederatedAuthError("Google account email is not verified")

        return {
            'uid': claims['sub'],
            'email': claims.get('email'),
            'name': claims.get('name'),
            'picture': claims.get('picture')
        }
