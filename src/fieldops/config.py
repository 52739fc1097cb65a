"""Application configuration and settings management."""

import json
from typing import Annotated, Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Fixed zone catalog: six metropolitan zones followed by five rural zones.
ZONE_CATALOG: tuple[str, ...] = (
    "Zona I - Metropolitana Suroriente",
    "Zona II - Metropolitana Suroccidente",
    "Zona III - Metropolitana Centro Oriente",
    "Zona IV - Metropolitana Centro Occidente",
    "Zona V - Metropolitana Noroccidente",
    "Zona VI - Metropolitana Nororiente",
    "Zona VII - Rural Oriental Norte",
    "Zona VIII - Rural Occidental Norte",
    "Zona IX - Rural Occidental Sur",
    "Zona X - Rural Oriental Sur",
    "Zona XI - Rural Occidental Centro",
)

# Default palette keyed by the normalized catalog prefix ("zona i" .. "zona xi").
DEFAULT_ZONE_COLORS: dict[str, str] = {
    "zona i": "#FF0000",
    "zona ii": "#00FF00",
    "zona iii": "#0000FF",
    "zona iv": "#FFFF00",
    "zona v": "#FF00FF",
    "zona vi": "#00FFFF",
    "zona vii": "#FFA500",
    "zona viii": "#800080",
    "zona ix": "#FFC0CB",
    "zona x": "#A52A2A",
    "zona xi": "#808080",
}
FALLBACK_ZONE_COLOR = "#000000"

# Country bounding box (south, north, west, east) used when validating boundaries.
COUNTRY_BOUNDS: dict[str, float] = {
    "south": -4.2,
    "north": 13.5,
    "west": -81.8,
    "east": -66.8,
}


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FIELDOPS_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Field Operations Zoning & Assignment API"
    api_prefix: str = "/api"
    frontend_allowed_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=("http://localhost:5173", "http://127.0.0.1:5173"),
        description="Permitted web origins for browser clients (CORS).",
    )

    duplicate_threshold_meters: float = Field(default=10.0, ge=0.0)
    nearest_zone_max_distance_meters: float = Field(
        default=50_000.0,
        gt=0.0,
        description="Centroid distance beyond which a coordinate is left without a zone.",
    )
    bulk_chunk_size: int = Field(default=100, ge=1)

    default_route_duration_minutes: int = Field(default=60, ge=1)
    default_point_work_minutes: int = Field(default=15, ge=0)
    route_setup_minutes: int = Field(default=30, ge=0)
    metropolitan_speed_kmh: float = Field(default=25.0, gt=0.0)
    rural_speed_kmh: float = Field(default=45.0, gt=0.0)

    max_utilization_threshold: float = Field(default=100.0, ge=0.0)
    allow_cross_zone_assignment: bool = True

    kmz_max_bytes: int = Field(default=10 * 1024 * 1024, ge=1)
    spreadsheet_max_bytes: int = Field(default=10 * 1024 * 1024, ge=1)
    spreadsheet_extensions: Annotated[tuple[str, ...], NoDecode] = (".xlsx", ".xlsm")

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("frontend_allowed_origins", "spreadsheet_extensions", mode="before")
    @classmethod
    def _split_env_list(cls, value: Any) -> tuple[str, ...]:
        """Accept a JSON array or a comma-separated string for list settings."""
        if isinstance(value, str):
            text = value.strip()
            value = json.loads(text) if text.startswith("[") else text.split(",")
        if not isinstance(value, (list, tuple)):
            raise ValueError("expected a list of strings")
        return tuple(str(item).strip() for item in value if str(item).strip())


settings = Settings()
