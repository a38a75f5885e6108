from decimal import Decimal
from dotenv import load_dotenv
import os

load_dotenv()

class Settings:
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    DEBUG = os.getenv("DEBUG", "False") == "True"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 120))
    ADMIN_REGISTRATION_CODE = os.getenv("ADMIN_REGISTRATION_CODE")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./betguard.db")
    DB_TIMEOUT_SECONDS = float(os.getenv("DB_TIMEOUT_SECONDS", 5))

    MIN_BET = Decimal(os.getenv("MIN_BET", "1.00"))
    DEFAULT_DEPOSIT_LIMIT = Decimal(os.getenv("DEFAULT_DEPOSIT_LIMIT", "1000.00"))
    DEFAULT_PLAY_TIME_LIMIT = int(os.getenv("DEFAULT_PLAY_TIME_LIMIT", 4))

    ORACLE_URL = os.getenv("ORACLE_URL", "https://ai.gateway.lovable.dev/v1/chat/completions")
    ORACLE_API_KEY = os.getenv("ORACLE_API_KEY")
    ORACLE_MODEL = os.getenv("ORACLE_MODEL", "google/gemini-2.5-flash")
    ORACLE_TIMEOUT_SECONDS = float(os.getenv("ORACLE_TIMEOUT_SECONDS", 20))

    # house edge on the quoted probability of a sports outcome
    SPORTS_WIN_FACTOR = Decimal(os.getenv("SPORTS_WIN_FACTOR", "0.3"))
    SPORTS_MIN_ODDS = Decimal(os.getenv("SPORTS_MIN_ODDS", "1.01"))
    SPORTS_MAX_ODDS = Decimal(os.getenv("SPORTS_MAX_ODDS", "100"))

settings = Settings()
