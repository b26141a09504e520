from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from catviewer.schemas.photo import Photo


class ImageQualityMetrics(BaseModel):
    brightness: float
    contrast: float
    quality_score: float = Field(alias="qualityScore")
    sharpness: float

    model_config = ConfigDict(populate_by_name=True)


class PhotoMetadata(BaseModel):
    """Sensor readings the camera writes next to each photo as a JSON sidecar."""

    timestamp: str
    uptime_seconds: float
    temperature_celsius: float
    humidity_percent: float
    cat_present: bool
    seconds_since_last_motion: float
    blanket_on: bool
    blanket_manual_override: bool | None = None
    mode: str | None = None
    dht22_sensor_working: bool | None = None
    chip_temperature: float | None = None
    wifi_connected: bool | None = None
    camera_available: bool | None = None
    image_quality_metrics: ImageQualityMetrics | None = None

    model_config = ConfigDict(extra="ignore")


class MetadataItem(BaseModel):
    photo: Photo
    metadata: PhotoMetadata


class MetadataBatch(BaseModel):
    """Metadata for a set of photos. Lookups that failed are counted, not raised."""

    items: list[MetadataItem] = Field(default_factory=list)
    failed: int = 0
    total: int = 0
    warning: str | None = None
    error: str | None = None


class TrendPoint(BaseModel):
    """One point of the sensor trend series. All readings are None on a gap marker."""

    timestamp: datetime
    temperature: float | None = None
    humidity: float | None = None
    cat_present: bool | None = None
    blanket_on: bool | None = None
    uptime: float | None = None
    is_reboot: bool = False
    is_gap: bool = False


class TrendSeries(BaseModel):
    points: list[TrendPoint]
    failed: int
    total: int
    warning: str | None = None
    error: str | None = None
