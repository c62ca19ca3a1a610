from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Tuple

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"
    APP_NAME: str = "gridquery"
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:8081"

    ODATA_DEFAULT_VERSION: int = 4  # 3 | 4, used when a source is configured as plain "odata"
    ODATA_TIMEOUT_SECONDS: float = 15.0
    ODATA_COUNT_FALLBACK: bool = False
    # name|url|odata4 entries, comma separated
    GRID_ODATA_SOURCES: str = ""

    GRID_THOUSAND_SEPARATOR: str = " "
    GRID_DECIMAL_PRECISION: int = 2
    GRID_DECIMAL_SEPARATOR: str = "."
    GRID_DATE_FORMAT: str = "%Y-%m-%d"
    GRID_DATETIME_FORMAT: str = "%Y-%m-%d %H:%M"
    GRID_YES_TEXT: str = "Yes"
    GRID_NO_TEXT: str = "No"

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def grid_odata_sources_list(self) -> List[Tuple[str, str, str]]:
        result = []
        for entry in self.GRID_ODATA_SOURCES.split(","):
            parts = [p.strip() for p in entry.split("|")]
            if len(parts) < 2 or not parts[0] or not parts[1]:
                continue
            options = parts[2] if len(parts) > 2 and parts[2] else "odata"
            result.append((parts[0], parts[1], options))
        return result

settings = Settings()
