from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql+asyncpg://roadbook:roadbook@db:5432/roadbook"
    record_store_url: str = "http://localhost:8000"
    share_base_url: str = "https://motormates.app"
    route_share_path: str = "/routes"
    photo_dir: str = "data/photos"
    log_level: str = "INFO"
    log_file: str | None = None

    model_config = {"env_file": ".env"}


settings = Settings()
