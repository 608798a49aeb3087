import os
from dotenv import load_dotenv
load_dotenv()

class VotingConfigs:
    def __init__(self):

        # Database settings
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./unionvote.db")
        self.DB_AUTO_CREATE = os.getenv("DB_AUTO_CREATE", "true").lower() == "true"

        # Redis settings
        self.REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379")
        self.REDIS_DB = int(os.getenv("REDIS_DB", "0"))

        # Store selection: "database" or "redis"
        self.STORE_BACKEND = os.getenv("STORE_BACKEND", "database").lower()

        # Session slot settings: "file" or "redis"
        self.SESSION_BACKEND = os.getenv("SESSION_BACKEND", "file").lower()
        self.SESSION_DIR = os.getenv("SESSION_DIR", "./sessions")
        self.SESSION_SLOT_NAME = os.getenv("SESSION_SLOT_NAME", "auth-storage")
        self.SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", "604800"))

        # Environment settings
        self.APPLICATION_ENVIRONMENT = os.getenv("APPLICATION_ENVIRONMENT", "LOCAL")
        self.APP_NAME = os.getenv("APP_NAME", "union-vote")
        self.APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
        self.DEBUG = os.getenv("DEBUG", "true").lower() == "true"
        self.ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "")

        # OTP settings
        self.OTP_LENGTH = int(os.getenv("OTP_LENGTH", "4"))
        self.OTP_EXPIRY_SECONDS = int(os.getenv("OTP_EXPIRY_SECONDS", "300"))
        self.OTP_RESEND_COOLDOWN_SECONDS = int(os.getenv("OTP_RESEND_COOLDOWN_SECONDS", "120"))

        # Reserved bootstrap administrator; do not add more numbers here
        self.ADMIN_PHONE_NUMBER = os.getenv("ADMIN_PHONE_NUMBER", "09132323123")

        # SMS gateway settings (0098sms)
        self.SMS_ENABLED = os.getenv("SMS_ENABLED", "false").lower() == "true"
        self.SMS_BASE_URL = os.getenv("SMS_BASE_URL", "https://0098sms.com/sendsmslink.aspx")
        self.SMS_FROM = os.getenv("SMS_FROM", "")
        self.SMS_USERNAME = os.getenv("SMS_USERNAME", "")
        self.SMS_PASSWORD = os.getenv("SMS_PASSWORD", "")
        self.SMS_DOMAIN = os.getenv("SMS_DOMAIN", "0098")
        self.SMS_TIMEOUT = int(os.getenv("SMS_TIMEOUT", "10"))
        self.SMS_MESSAGE_PREFIX = os.getenv("SMS_MESSAGE_PREFIX", "Your verification code")
        self.UNION_NAME = os.getenv("UNION_NAME", "Computer Guild Union")

        # Sentry settings
        self.SENTRY_ENABLED = os.getenv("SENTRY_ENABLED", "false").lower() == "true"
        self.SENTRY_DSN = os.getenv("SENTRY_DSN", "")
        self.ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
        self.SENTRY_RELEASE = os.getenv("SENTRY_RELEASE", "union-vote@1.0.0")
        self.SENTRY_TRACES_SAMPLE_RATE = os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1")

        # Logging Core settings
        self.LOG_DIR = os.getenv("LOG_DIR", "logs")
        self.FIREHOSE_ENABLED = os.getenv("FIREHOSE_ENABLED", "false").lower() == "true"
        self.AUDIT_LOGGING_ENABLED = os.getenv("AUDIT_LOGGING_ENABLED", "false").lower() == "true"
        self.LOG_DEBUG_PRINTS = os.getenv("LOG_DEBUG_PRINTS", "false").lower() == "true"

        # Logging Stream Names
        self.APP_LOGS_STREAM_NAME = os.getenv("APP_LOGS_STREAM_NAME", "")
        self.AUDIT_LOGS_STREAM_NAME = os.getenv("AUDIT_LOGS_STREAM_NAME", "")
        self.LOG_BUFFER_TIMEOUT = int(os.getenv("LOG_BUFFER_TIMEOUT", "600"))

        # Logging Buffer Sizes
        self.APP_LOGS_CAPACITY = int(os.getenv("APP_LOGS_CAPACITY", "50"))
        self.AUDIT_LOGS_CAPACITY = int(os.getenv("AUDIT_LOGS_CAPACITY", "50"))

        # Firehose settings
        self.FIREHOSE_REGION_NAME = os.getenv("FIREHOSE_REGION_NAME", "eu-central-1")
        self.FIREHOSE_ACCESS_KEY_ID = os.getenv("FIREHOSE_ACCESS_KEY_ID", "")
        self.FIREHOSE_SECRET_ACCESS_KEY = os.getenv("FIREHOSE_SECRET_ACCESS_KEY", "")
        self.FIREHOSE_RETRY_COUNT = int(os.getenv("FIREHOSE_RETRY_COUNT", "3"))
        self.FIREHOSE_RETRY_DELAY = int(os.getenv("FIREHOSE_RETRY_DELAY", "1"))
