from pydantic import BaseModel
import os


from dotenv import load_dotenv
load_dotenv()
class Settings(BaseModel):
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./aerosense.db")
    app_name: str = os.getenv("APP_NAME", "AeroSense")
    # "development" exposes exception text in 500 responses
    environment: str = os.getenv("ENVIRONMENT", "production")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    auto_create_tables: bool = os.getenv("AUTO_CREATE_TABLES", "true").lower() in ("1", "true", "yes")

    jwt_secret: str = os.getenv("JWT_SECRET", "change-me")
    jwt_issuer: str = os.getenv("JWT_ISSUER", "aerosense-api")
    access_ttl_min: int = int(os.getenv("ACCESS_TOKEN_TTL_MIN", "1440"))

    bcrypt_rounds: int = int(os.getenv("BCRYPT_ROUNDS", "10"))
    otp_exp_minutes: int = int(os.getenv("OTP_EXP_MINUTES", "30"))

    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "5"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "5"))
    db_pool_timeout_s: int = int(os.getenv("DB_POOL_TIMEOUT_S", "30"))
    db_statement_timeout_ms: int = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "10000"))

    smtp_server: str = os.getenv("SMTP_SERVER", "")
    smtp_port: int = int(os.getenv("SMTP_PORT", "587"))
    smtp_user: str = os.getenv("SMTP_USER", "")
    smtp_password: str = os.getenv("SMTP_PASSWORD", "")
    mail_from: str = os.getenv("MAIL_FROM", "noreply@aerosense.com")
    mail_from_name: str = os.getenv("MAIL_FROM_NAME", "AeroSense")

    upload_dir: str = os.getenv("UPLOAD_DIR", "./uploads/profiles")
    cors_origins: str = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5001")

settings = Settings()
