from os import getenv
from dotenv import load_dotenv

load_dotenv()

class Config:

    ALLOWED_ORIGINS: list = getenv("ALLOWED_ORIGINS", "http://localhost:5173").split(",")


    POSTGRES_USER: str = getenv("POSTGRES_USER")
    POSTGRES_PASSWORD: str = getenv("POSTGRES_PASSWORD")
    POSTGRES_DB: str = getenv("POSTGRES_DB")
    POSTGRES_PORT: str = getenv("POSTGRES_PORT", "5432")

    @property
    def DATABASE_URL(self) -> str:
        return getenv(
            "DATABASE_URL",
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@db:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # Единое локальное время портала
    TIMEZONE: str = getenv("TIMEZONE", "Africa/Tunis")

    # Планировщик дедлайнов
    SWEEP_INTERVAL_SECONDS: int = int(getenv("SWEEP_INTERVAL_SECONDS", "86400"))
    NOTIFICATION_TIMEOUT_SECONDS: float = float(getenv("NOTIFICATION_TIMEOUT_SECONDS", "15"))
    MAX_NOTIFICATION_RECIPIENTS: int = int(getenv("MAX_NOTIFICATION_RECIPIENTS", "10"))

    # Окно архивации после дедлайна (14 дней)
    ARCHIVE_WINDOW_HOURS: int = int(getenv("ARCHIVE_WINDOW_HOURS", "336"))

    # Microsoft Graph (почта)
    GRAPH_TENANT_ID: str = getenv("GRAPH_TENANT_ID")
    GRAPH_CLIENT_ID: str = getenv("GRAPH_CLIENT_ID")
    GRAPH_CLIENT_SECRET: str = getenv("GRAPH_CLIENT_SECRET")
    GRAPH_SENDER_EMAIL: str = getenv("GRAPH_SENDER_EMAIL")

    # S3-хранилище
    S3_ENDPOINT_URL: str = getenv("S3_ENDPOINT_URL")
    S3_BUCKET_NAME: str = getenv("S3_BUCKET_NAME")
    S3_REGION: str = getenv("S3_REGION")
    S3_ACCESS_KEY: str = getenv("S3_ACCESS_KEY")
    S3_SECRET_KEY: str = getenv("S3_SECRET_KEY")

    def validate(self) -> None:
        """Проверяет наличие обязательных переменных окружения."""
        required_vars = {
            "GRAPH_TENANT_ID": self.GRAPH_TENANT_ID,
            "GRAPH_CLIENT_ID": self.GRAPH_CLIENT_ID,
            "GRAPH_CLIENT_SECRET": self.GRAPH_CLIENT_SECRET,
            "GRAPH_SENDER_EMAIL": self.GRAPH_SENDER_EMAIL,
            "S3_BUCKET_NAME": self.S3_BUCKET_NAME,
            "S3_ACCESS_KEY": self.S3_ACCESS_KEY,
            "S3_SECRET_KEY": self.S3_SECRET_KEY,
        }
        missing_vars = [key for key, value in required_vars.items() if not value]
        if missing_vars:
            raise ValueError(f"Missing required environment variables: {', '.join(missing_vars)}")

settings = Config()
