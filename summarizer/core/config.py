"""
Application configuration using Pydantic Settings.
All configuration values can be overridden via environment variables or .env file.
"""
from pydantic_settings import BaseSettings
from pathlib import Path
from typing import Optional


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application
    app_name: str = "Screen Recording Summarizer API"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    # Working directory layout (relative to work_dir)
    work_dir: Path = Path(".")
    uploads_dir_name: str = "uploads"
    temp_dir_name: str = "temp"
    segments_dir_name: str = "segments"
    output_dir_name: str = "output"
    logs_dir_name: str = "logs"
    thumbnails_dir_name: str = "thumbnails"

    # Job log persistence
    database_url: Optional[str] = None  # defaults to sqlite file under logs/
    database_echo: bool = False
    database_create_tables: bool = True  # off when the schema is managed with alembic
    job_log_mirror_jsonl: bool = True

    # Upload / validation limits
    max_upload_size_mb: int = 100
    max_video_size_mb: int = 500
    min_video_duration: float = 1.0
    max_video_duration: float = 1800.0  # 30 minutes
    allowed_video_extensions: str = ".mp4,.avi,.mov,.mkv,.webm"
    temp_max_age_hours: float = 24.0

    # FFmpeg
    ffmpeg_binary: str = "ffmpeg"
    ffprobe_binary: str = "ffprobe"
    ffprobe_timeout: int = 60
    ffmpeg_timeout: int = 3600
    segment_preset: str = "fast"
    segment_crf: int = 23
    output_frame_rate: int = 30

    # Audio extraction (optimized for speech transcription)
    audio_codec: str = "libmp3lame"
    audio_bitrate: str = "128k"
    audio_sample_rate: int = 16000
    audio_channels: int = 1

    # Transcription service (OpenAI-compatible)
    transcription_api_base: str = "https://api.openai.com/v1"
    transcription_api_key: Optional[str] = None
    transcription_model: str = "whisper-1"
    transcription_timeout: int = 600
    transcription_max_file_mb: int = 25
    transcription_language: str = "en"

    # Moment detection service (OpenAI-compatible chat completions)
    detection_api_base: str = "https://api.openai.com/v1"
    detection_api_key: Optional[str] = None
    detection_model: str = "gpt-4o"
    detection_temperature: float = 0.3
    detection_max_tokens: int = 4000
    detection_timeout: int = 600
    detection_max_retries: int = 1
    detection_include_video: bool = False
    default_video_duration: float = 300.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def uploads_dir(self) -> Path:
        return self.work_dir / self.uploads_dir_name

    @property
    def temp_dir(self) -> Path:
        return self.work_dir / self.temp_dir_name

    @property
    def segments_dir(self) -> Path:
        return self.work_dir / self.segments_dir_name

    @property
    def output_dir(self) -> Path:
        return self.work_dir / self.output_dir_name

    @property
    def logs_dir(self) -> Path:
        return self.work_dir / self.logs_dir_name

    @property
    def thumbnails_dir(self) -> Path:
        return self.work_dir / self.thumbnails_dir_name

    def get_database_url(self) -> str:
        """Get the job log database URL, defaulting to a SQLite file in logs/."""
        if self.database_url:
            return self.database_url
        db_path = (self.logs_dir / "job_log.db").resolve()
        return f"sqlite+aiosqlite:///{db_path}"

    def get_allowed_extensions(self) -> set:
        """Get allowed upload extensions as a lowercase set."""
        return {
            ext.strip().lower()
            for ext in self.allowed_video_extensions.split(",")
            if ext.strip()
        }

    def get_transcription_url(self) -> str:
        """Get the URL for the transcription endpoint."""
        return f"{self.transcription_api_base.rstrip('/')}/audio/transcriptions"

    def get_detection_url(self) -> str:
        """Get the URL for the moment detection chat completions endpoint."""
        return f"{self.detection_api_base.rstrip('/')}/chat/completions"


# Global settings instance (lazily initialized)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings(settings: Optional[Settings] = None) -> None:
    """Replace the global settings instance (None forces a reload on next access)."""
    global _settings
    _settings = settings
