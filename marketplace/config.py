import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()


def _normalize_db_url(db_url, require_ssl=False):
    if not db_url:
        return db_url
    # SQLAlchemy only understands the postgresql:// scheme
    db_url = db_url.replace('postgres://', 'postgresql://')
    if require_ssl and db_url.startswith('postgresql') and 'sslmode=' not in db_url:
        db_url = f"{db_url}{'?' if '?' not in db_url else '&'}sslmode=require"
    return db_url


def _as_bool(value, default=False):
    if value is None:
        return default
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY') or 'dev-key-for-testing'
    DEBUG = False
    TESTING = False
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = _normalize_db_url(os.environ.get('DATABASE_URL'), require_ssl=True) or 'sqlite:///marketplace.db'

    # JWT
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY') or SECRET_KEY
    JWT_ALGORITHM = os.getenv('JWT_ALGORITHM', 'HS256')
    JWT_PRIVATE_KEY_PATH = os.getenv('JWT_PRIVATE_KEY_PATH', 'marketplace/ssl/private_key.pem')
    JWT_PUBLIC_KEY_PATH = os.getenv('JWT_PUBLIC_KEY_PATH', 'marketplace/ssl/public_key.pem')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=int(os.getenv('JWT_ACCESS_TOKEN_HOURS', 1)))

    # Email configuration
    SMTP_HOST = os.environ.get('SMTP_HOST', 'smtp.gmail.com')
    SMTP_PORT = int(os.environ.get('SMTP_PORT', 587))
    SMTP_USER = os.environ.get('SMTP_USER')
    SMTP_PASSWORD = os.environ.get('SMTP_PASSWORD')
    SENDER_EMAIL = os.environ.get('SENDER_EMAIL') or SMTP_USER
    SENDER_NAME = os.environ.get('SENDER_NAME', 'Marketplace')
    PROJECT_NAME = os.environ.get('PROJECT_NAME', 'Marketplace')
    FRONTEND_URL = os.environ.get('FRONTEND_URL', 'http://localhost:3000')
    PASSWORD_RESET_EXPIRES = timedelta(hours=1)

    # Object storage
    AWS_REGION = os.environ.get('AWS_REGION', 'ap-southeast-1')
    S3_BUCKET_NAME = os.environ.get('S3_BUCKET_NAME', 'marketplace-uploads')
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', os.path.join(os.getcwd(), 'uploads'))
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024
    ALLOWED_IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif', '.webp'}

    # Payment gateway
    MIDTRANS_SERVER_KEY = os.environ.get('MIDTRANS_SERVER_KEY')
    MIDTRANS_CLIENT_KEY = os.environ.get('MIDTRANS_CLIENT_KEY')
    MIDTRANS_IS_PRODUCTION = _as_bool(os.environ.get('MIDTRANS_IS_PRODUCTION'))
    MIDTRANS_VERIFY_SIGNATURE = _as_bool(os.environ.get('MIDTRANS_VERIFY_SIGNATURE'), default=True)
    MIDTRANS_TIMEOUT = int(os.environ.get('MIDTRANS_TIMEOUT', 10))

    # Federated login
    GOOGLE_CLIENT_ID = os.environ.get('GOOGLE_CLIENT_ID')


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _normalize_db_url(os.getenv('DEVELOPMENT_DATABASE_URL') or os.getenv('DATABASE_URL')) or 'sqlite:///marketplace.db'


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = _normalize_db_url(os.getenv('TESTING_DATABASE_URL')) or 'sqlite:///:memory:'
    JWT_SECRET_KEY = 'testing-secret-key-with-enough-length'
    JWT_ALGORITHM = 'HS256'
    MIDTRANS_SERVER_KEY = 'SB-Mid-server-testing'
    MIDTRANS_VERIFY_SIGNATURE = True


class ProductionConfig(Config):
    SQLALCHEMY_DATABASE_URI = _normalize_db_url(os.getenv('PRODUCTION_DATABASE_URL') or os.getenv('DATABASE_URL'), require_ssl=True)


class StagingConfig(Config):
    SQLALCHEMY_DATABASE_URI = _normalize_db_url(os.getenv('DATABASE_URL'), require_ssl=True)


config_by_name = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'staging': StagingConfig,
    'default': DevelopmentConfig
}
