import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    # ---------------------
    # Database
    # ---------------------
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./school_fees.db")

    # ---------------------
    # Auth (JWT)
    # ---------------------
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
    ALGORITHM = os.getenv("ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))  # 24 hours

    ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin")
    STAFF_USERNAME = os.getenv("STAFF_USERNAME", "staff")
    STAFF_PASSWORD = os.getenv("STAFF_PASSWORD", "staff")

    # ---------------------
    # Logging
    # ---------------------
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # ---------------------
    # Receipts
    # ---------------------
    RECEIPT_PREFIX = os.getenv("RECEIPT_PREFIX", "REC")

    # Comma separated list of allowed frontend origins
    CORS_ORIGINS = [
        o.strip()
        for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
        if o.strip()
    ]


config = Config()
