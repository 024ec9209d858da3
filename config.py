"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Upload size limit for model files
    MAX_CONTENT_LENGTH = int(os.getenv('MAX_UPLOAD_SIZE', 50 * 1024 * 1024))  # 50MB

    # Key-value store backend: sql | redis | memory
    STORE_BACKEND = os.getenv('STORE_BACKEND', 'sql')
    STORE_KEY_PREFIX = os.getenv('STORE_KEY_PREFIX', 'fabquote')

    # Database (sql backend)
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///fabquote.db')
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'

    # Redis (redis backend)
    REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

    # Tax jurisdiction of the seller (CGST+SGST inside, IGST outside)
    HOME_JURISDICTION = os.getenv('HOME_JURISDICTION', 'Karnataka')

    # Business Information (for quotations/invoices)
    BUSINESS_NAME = os.getenv('BUSINESS_NAME', 'FabQuote Manufacturing')
    BUSINESS_GSTN = os.getenv('BUSINESS_GSTN', '')
    BUSINESS_ADDRESS = os.getenv('BUSINESS_ADDRESS', '')
    BUSINESS_CITY = os.getenv('BUSINESS_CITY', 'Bengaluru')
    BUSINESS_STATE = os.getenv('BUSINESS_STATE', HOME_JURISDICTION)
    BUSINESS_PHONE = os.getenv('BUSINESS_PHONE', '')
    BUSINESS_EMAIL = os.getenv('BUSINESS_EMAIL', '')
    CURRENCY = os.getenv('CURRENCY', 'INR')

    # Document defaults
    QUOTATION_VALID_DAYS = int(os.getenv('QUOTATION_VALID_DAYS', '30'))
    DRAFT_EXPIRY_HOURS = int(os.getenv('DRAFT_EXPIRY_HOURS', '24'))
    DEFAULT_LEAD_TIME = os.getenv('DEFAULT_LEAD_TIME', '3-5 days')
    DEFAULT_PAYMENT_TERMS = os.getenv('DEFAULT_PAYMENT_TERMS', 'Net 30')

    # Error tracking
    SENTRY_DSN = os.getenv('SENTRY_DSN')


class TestConfig(Config):
    """Configuration for the test suite: in-memory store, no Sentry."""

    TESTING = True
    DEBUG = False
    ENV = 'testing'
    STORE_BACKEND = 'memory'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SENTRY_DSN = None
    BUSINESS_NAME = 'Test Fab Works'
    BUSINESS_STATE = 'Karnataka'
    HOME_JURISDICTION = 'Karnataka'
