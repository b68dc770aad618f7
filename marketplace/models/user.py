from dataclasses import dataclass
from datetime import datetime, timezone
import enum
import uuid

from werkzeug.security import generate_password_hash, check_password_hash

from marketplace.models.base import BaseModel, Record, utc_now_iso


class UserRole(enum.Enum):
    user = "user"
    admin = "admin"


class AuthProvider(enum.Enum):
    local = "local"
    google = "google"


@dataclass
class User(Record):
    id: str
    email: str
    username: str
    password: str = None
    address: str = ""
    phone_number: str = ""
    role: str = UserRole.user.value
    access_token: str = None
    reset_password_token: str = None
    reset_password_expires: str = None
    google_uid: str = None
    profile_picture: str = None
    auth_provider: str = AuthProvider.local.value
    created_at: str = None
    updated_at: str = None
    deleted_at: str = None

    PRIVATE_FIELDS = ('password', 'access_token', 'reset_password_token', 'reset_password_expires')

    def verify_password(self, password):
        if not self.password:
            return False
        return check_password_hash(self.password, password)

    def to_json(self):
        data = super().to_json()
        for name in self.PRIVATE_FIELDS:
            data.pop(name, None)
        return data

    def to_public_json(self):
        return {
            'id': self.id,
            'name': self.username,
            'email': self.email,
            'profile_picture': self.profile_picture
        }

    def __repr__(self):
        return f'<User {self.username}>'


class UserModel(BaseModel):
    collection_name = 'users'
    record_class = User
    required_fields = ('email', 'username')
    immutable_fields = ('id', 'created_at', 'email', 'role', 'password')

    def create(self, user_data):
        """Create a user; ``password`` is the plaintext and is stored hashed."""
        self._check_required(user_data)
        provider = user_data.get('auth_provider') or AuthProvider.local.value
        if provider == AuthProvider.local.value and not user_data.get('password'):
            raise ValueError("Email, password, and username are required.")

        now = utc_now_iso()
        user = User(
            id=str(uuid.uuid4()),
            email=user_data['email'].strip().lower(),
            username=user_data['username'],
            password=generate_password_hash(user_data['password']) if user_data.get('password') else None,
            address=user_data.get('address') or "",
            phone_number=user_data.get('phone_number') or "",
            role=user_data.get('role') or UserRole.user.value,
            google_uid=user_data.get('google_uid'),
            profile_picture=user_data.get('profile_picture'),
            auth_provider=provider,
            created_at=now,
            updated_at=now,
        )
        return self._insert(user)

    def find_by_email(self, email):
        if not email:
            return None
        return self.find_one_by('email', email.strip().lower())

    def find_by_username(self, username):
        return self.find_one_by('username', username)

    def find_by_google_uid(self, google_uid):
        return self.find_one_by('google_uid', google_uid)

    def find_by_reset_token(self, token):
        """Live user holding ``token`` whose reset window has not expired."""
        user = self.find_one_by('reset_password_token', token)
        if not user or not user.reset_password_expires:
            return None
        expires = datetime.fromisoformat(user.reset_password_expires)
        if expires < datetime.now(timezone.utc):
            return None
        return user

    def is_username_taken(self, username, exclude_user_id=None):
        existing = self.find_by_username(username)
        return existing is not None and existing.id != exclude_user_id

    def list_users(self, page=1, limit=10):
        query = self.collection.query().live().order_by('created_at', descending=True)
        users, pagination = self.paginate(query, page, limit)
        return users, pagination

    def update_access_token(self, user_id, access_token):
        self.collection.update(user_id, {'access_token': access_token, 'updated_at': utc_now_iso()})
        return True

    def set_reset_password_token(self, user_id, token, expires_at):
        self.collection.update(user_id, {
            'reset_password_token': token,
            'reset_password_expires': expires_at,
            'updated_at': utc_now_iso()
        })

    def update_password(self, user_id, new_password):
        """Hash and store a new password, clearing any pending reset token."""
        self.collection.update(user_id, {
            'password': generate_password_hash(new_password),
            'reset_password_token': None,
            'reset_password_expires': None,
            'updated_at': utc_now_iso()
        })

    def link_google_account(self, user_id, google_uid, profile_picture=None):
        data = {'google_uid': google_uid, 'updated_at': utc_now_iso()}
        if profile_picture:
            data['profile_picture'] = profile_picture
        self.collection.update(user_id, data)
        return self.find_by_id(user_id)

    def soft_delete(self, user_id):
        now = utc_now_iso()
        self.collection.update(user_id, {'deleted_at': now, 'updated_at': now, 'access_token': None})
        return True
