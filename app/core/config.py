from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Skating Store API"
    DATABASE_URL: str = "sqlite:///./skating_store.db"
    SECRET_KEY: str = "supersecretkey_change_me_in_production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7 # 1 week
    MIN_PASSWORD_LENGTH: int = 6

    LOG_LEVEL: str = "INFO"
    SEED_DEMO_DATA: bool = True

    # PayU defaults, used when no payment option is configured
    PAYU_KEY: str = "YOUR_PAYU_KEY"
    PAYU_SALT: str = "YOUR_PAYU_SALT"
    PAYU_BASE_URL: str = "https://secure.payu.in"
    # Demo mode: checkout marks orders paid without a provider round-trip
    PAYMENT_SIMULATION: bool = True
    PUBLIC_BASE_URL: str = "http://localhost:5173"

    # AWS S3 (product images)
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_REGION: str = "ap-south-1"
    S3_BUCKET: str = "skating-store-product-images"

    @property
    def S3_BASE_URL(self) -> str:
        return f"https://{self.S3_BUCKET}.s3.{self.AWS_REGION}.amazonaws.com"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
