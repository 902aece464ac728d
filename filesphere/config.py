import os

from pydantic_settings import BaseSettings
from pydantic import Field

class Settings(BaseSettings):
    app_env: str = Field("dev", alias="APP_ENV")
    app_host: str = Field("0.0.0.0", alias="APP_HOST")
    app_port: int = Field(3001, alias="APP_PORT")
    log_level: str = Field("info", alias="LOG_LEVEL")

    # comma-separated; "*" allows any origin
    cors_origins: str = Field("*", alias="CORS_ORIGINS")

    # --- Indexing ---
    scan_dir: str = Field(default_factory=os.getcwd, alias="SCAN_DIR")
    page_size: int = Field(100, alias="PAGE_SIZE")
    broadcast_queue_size: int = Field(256, alias="BROADCAST_QUEUE_SIZE")

    # --- Spatial layout ---
    inner_radius: float = Field(7.0, alias="INNER_RADIUS")
    outer_radius: float = Field(70.0, alias="OUTER_RADIUS")
    # sizes are mapped onto the radii on a log scale between these bounds
    spatial_min_size: int = Field(0, alias="SPATIAL_MIN_SIZE")
    spatial_max_size: int = Field(1 << 30, alias="SPATIAL_MAX_SIZE")

    # --- Visibility / LOD ---
    view_distance: float = Field(600.0, alias="VIEW_DISTANCE")
    lod_mid_threshold: float = Field(25.0, alias="LOD_MID_THRESHOLD")
    lod_far_threshold: float = Field(60.0, alias="LOD_FAR_THRESHOLD")

    # --- Thumbnails ---
    thumb_size: int = Field(256, alias="THUMB_SIZE")
    thumb_quality: int = Field(85, alias="THUMB_QUALITY")

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    def allowed_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

settings = Settings()
