from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "LabDesk Laboratory Workflow"
    VERSION: str = "1.0.0"

    DATABASE_URL: str = "sqlite:///./labdesk.db"

    LOG_LEVEL: str = "INFO"

    # Notification sink keeps only the most recent events
    NOTIFICATION_BUFFER_SIZE: int = 200

    # Compute the by-category pivot with a single GROUP BY instead of in memory
    AGGREGATION_PUSHDOWN: bool = False

    # Seed the demo lab test and patient on startup
    SEED_DEMO_DATA: bool = True

    class Config:
        env_file = ".env"


settings = Settings()
