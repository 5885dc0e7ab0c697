import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name, default='False'):
    return os.environ.get(name, default).lower() in ('true', '1', 't', 'yes')


def _normalize_database_url(database_url):
    """Ensure we're using postgresql:// not postgres://"""
    if database_url and database_url.startswith('postgres://'):
        return database_url.replace('postgres://', 'postgresql://', 1)
    return database_url


class Config:
    """Base configuration shared by every environment"""

    # Security Configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    JWT_SECRET = os.environ.get('JWT_SECRET')
    JWT_ALGORITHM = os.environ.get('JWT_ALGORITHM', 'HS256')
    JWT_EXPIRES_DAYS = int(os.environ.get('JWT_EXPIRES_DAYS', 7))

    # Set in __init__
    SQLALCHEMY_DATABASE_URI = None
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_recycle': 3600,
        'pool_pre_ping': True,
    }

    FRONTEND_URL = os.environ.get('FRONTEND_URL', 'http://localhost:5173')
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get('CORS_ORIGINS', '').split(',')
        if origin.strip()
    ]
    CORS_SUPPORTS_CREDENTIALS = True

    # Naive deadlines are read in this zone and stored as UTC
    TIMEZONE = os.environ.get('TIMEZONE', 'Africa/Accra')

    # --- Auto-selection sweep ---
    AUTO_SELECT_ENABLED = _env_flag('AUTO_SELECT_ENABLED', 'True')
    AUTO_SELECT_HOUR = int(os.environ.get('AUTO_SELECT_HOUR', 0))
    AUTO_SELECT_MINUTE = int(os.environ.get('AUTO_SELECT_MINUTE', 0))
    DEFAULT_DELIVERY_TIME = os.environ.get('DEFAULT_DELIVERY_TIME', '3')

    # --- Offers ---
    REQUIRE_VERIFIED_SUPPLIERS = _env_flag('REQUIRE_VERIFIED_SUPPLIERS')

    # --- Notifications ---
    MAIL_SERVER = os.environ.get('MAIL_SERVER')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 587))
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_USE_TLS = _env_flag('MAIL_USE_TLS', 'True')
    MAIL_SENDER = os.environ.get('MAIL_SENDER') or os.environ.get('MAIL_USERNAME')
    NOTIFICATION_BATCH_SIZE = int(os.environ.get('NOTIFICATION_BATCH_SIZE', 10))
    NOTIFICATION_BATCH_DELAY = float(os.environ.get('NOTIFICATION_BATCH_DELAY', 2))
    NOTIFICATIONS_ASYNC = _env_flag('NOTIFICATIONS_ASYNC', 'True')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    @staticmethod
    def get_database_url():
        """Get properly formatted database URL string"""
        database_url = os.environ.get('DATABASE_URL')
        if database_url:
            return _normalize_database_url(database_url)
        # Fallback for local development
        return 'sqlite:///procurement_dev.db'

    def __init__(self):
        self.SQLALCHEMY_DATABASE_URI = self.get_database_url()
        if not self.JWT_SECRET:
            self.JWT_SECRET = self.SECRET_KEY
        if not self.CORS_ORIGINS:
            self.CORS_ORIGINS = [self.FRONTEND_URL]


class DevelopmentConfig(Config):
    """Development configuration for local testing"""
    DEBUG = True

    def __init__(self):
        super().__init__()

        dev_database_url = os.environ.get('DEV_DATABASE_URL')
        if dev_database_url:
            self.SQLALCHEMY_DATABASE_URI = _normalize_database_url(dev_database_url)

        self.CORS_ORIGINS = self.CORS_ORIGINS + [
            'http://localhost:3000',
            'http://127.0.0.1:5173',
        ]


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False

    def __init__(self):
        super().__init__()

        secret_key = os.environ.get('SECRET_KEY')
        if not secret_key:
            raise ValueError("SECRET_KEY environment variable is required for production")
        self.SECRET_KEY = secret_key
        self.JWT_SECRET = os.environ.get('JWT_SECRET') or secret_key

        database_url = os.environ.get('DATABASE_URL')
        if not database_url:
            raise ValueError("DATABASE_URL environment variable is required for production")
        self.SQLALCHEMY_DATABASE_URI = _normalize_database_url(database_url)

        self.SQLALCHEMY_ENGINE_OPTIONS = {
            'pool_recycle': 3600,
            'pool_pre_ping': True,
            'pool_size': 20,
            'max_overflow': 30,
            'pool_timeout': 60,
        }


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    SECRET_KEY = 'testing-secret-key'
    AUTO_SELECT_ENABLED = False
    NOTIFICATIONS_ASYNC = False
    NOTIFICATION_BATCH_DELAY = 0
    MAIL_SERVER = None

    def __init__(self):
        super().__init__()
        self.SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
        self.SQLALCHEMY_ENGINE_OPTIONS = {}
        self.JWT_SECRET = 'testing-jwt-secret'
        self.CORS_ORIGINS = ['*']


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config_name():
    """Detect environment from FLASK_ENV or CI markers"""
    flask_env = os.environ.get('FLASK_ENV', '').lower()
    if flask_env in ['production', 'testing', 'development']:
        return flask_env

    if os.environ.get('TESTING') or os.environ.get('CI'):
        return 'testing'

    return 'development'


__all__ = [
    'config',
    'get_config_name',
]
