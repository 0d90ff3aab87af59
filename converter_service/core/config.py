# converter_service/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    # Auth / JWT
    jwt_secret: str | None = Field(None, alias="JWT_SECRET")
    jwt_alg: str = Field("HS256", alias="JWT_ALG")
    expected_service: str = Field("learnkata-backend", alias="EXPECTED_SERVICE")

    # "development" exposes the token minting route, anything else hides it
    environment: str = Field("production", alias="ENVIRONMENT")

    # CORS (comma separated; empty allows every origin)
    allowed_origins: str = Field("", alias="ALLOWED_ORIGINS")

    # Conversion
    max_upload_mb: int = Field(50, alias="MAX_UPLOAD_MB")
    soffice_bin: str = Field("soffice", alias="SOFFICE_BIN")
    conversion_timeout_sec: int = Field(120, alias="CONVERSION_TIMEOUT_SEC")

    # Server / logging
    host: str = Field("0.0.0.0", alias="HOST")
    port: int = Field(3001, alias="PORT")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_format: str = Field("text", alias="LOG_FORMAT")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def is_development(self) -> bool:
        return self.environment.strip().lower() == "development"

    @property
    def origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


settings = Settings()
