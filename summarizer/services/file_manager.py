"""
File Manager -- directory layout and file bookkeeping under work_dir.

    {work_dir}/
    ├── uploads/                 raw uploads
    ├── temp/                    proc-* working copies, extracted audio, concat lists
    ├── segments/{job_id}/       per-moment clips
    ├── thumbnails/{job_id}/     segment thumbnails
    ├── output/                  summary_{job_id}.mp4 and previews
    └── logs/                    job log database and JSONL mirror
"""
import logging
import math
import shutil
import time
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from summarizer.core.config import get_settings
from summarizer.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = {".mp4", ".avi", ".mov", ".mkv", ".webm", ".flv", ".wmv", ".m4v"}
AUDIO_EXTENSIONS = {".mp3", ".wav", ".flac", ".aac", ".ogg", ".wma", ".m4a"}


def ensure_directories() -> Dict[str, Path]:
    """Create every working directory; returns name -> path."""
    settings = get_settings()
    directories = {
        "uploads": settings.uploads_dir,
        "temp": settings.temp_dir,
        "segments": settings.segments_dir,
        "output": settings.output_dir,
        "logs": settings.logs_dir,
        "thumbnails": settings.thumbnails_dir,
    }
    for path in directories.values():
        path.mkdir(parents=True, exist_ok=True)
    return directories


def generate_unique_filename(original_name: str, prefix: str = "", suffix: str = "") -> str:
    """{prefix}{stem}{suffix}-{millis}-{uuid8}{ext}"""
    original = Path(original_name)
    return (
        f"{prefix}{original.stem}{suffix}-{int(time.time() * 1000)}"
        f"-{uuid.uuid4().hex[:8]}{original.suffix}"
    )


def move_to_processing(source_path: Path, original_name: Optional[str] = None) -> Dict[str, Any]:
    """
    Move an uploaded file into temp/ under a unique proc- name.

    Raises:
        ValidationError: If the source file does not exist
    """
    if not source_path.exists():
        raise ValidationError(f"Uploaded file not found: {source_path.name}")

    temp_dir = get_settings().temp_dir
    temp_dir.mkdir(parents=True, exist_ok=True)

    new_filename = generate_unique_filename(original_name or source_path.name, prefix="proc-")
    target = temp_dir / new_filename
    shutil.move(str(source_path), str(target))
    logger.info(f"Moved {source_path.name} to processing as {new_filename}")

    return {
        "success": True,
        "tempPath": str(target),
        "filename": new_filename,
        "directory": "temp",
    }


def cleanup_file(file_path: Path) -> bool:
    """Delete one file. Returns False when it was already gone."""
    if not file_path.exists():
        return False
    file_path.unlink()
    logger.debug(f"Deleted file: {file_path}")
    return True


def cleanup_temp_files(max_age_hours: float = 24.0, only: Optional[Iterable[Path]] = None) -> Dict[str, Any]:
    """
    Delete files in temp/ older than max_age_hours.

    Args:
        max_age_hours: Age cutoff by modification time (0 deletes everything eligible)
        only: Restrict deletion to these paths

    Returns:
        Dict with filesRemoved, bytesFreed, spaceFreed and message
    """
    temp_dir = get_settings().temp_dir
    cutoff = time.time() - max_age_hours * 3600
    files_removed = 0
    bytes_freed = 0

    if only is not None:
        candidates = [Path(p) for p in only]
    elif temp_dir.exists():
        candidates = [p for p in temp_dir.iterdir() if p.is_file()]
    else:
        candidates = []

    for file_path in candidates:
        try:
            stat = file_path.stat()
        except FileNotFoundError:
            continue
        if max_age_hours > 0 and stat.st_mtime >= cutoff:
            continue
        file_path.unlink()
        files_removed += 1
        bytes_freed += stat.st_size
        logger.debug(f"Cleaned up temp file: {file_path.name}")

    logger.info(f"Temp cleanup: removed {files_removed} files, freed {format_bytes(bytes_freed)}")

    return {
        "success": True,
        "filesRemoved": files_removed,
        "bytesFreed": bytes_freed,
        "spaceFreed": format_bytes(bytes_freed),
        "message": f"Cleaned up {files_removed} temporary files",
    }


def get_file_info(file_path: Path) -> Dict[str, Any]:
    if not file_path.exists():
        return {"path": str(file_path), "exists": False}
    stat = file_path.stat()
    ext = file_path.suffix.lower()
    return {
        "path": str(file_path),
        "filename": file_path.name,
        "extension": ext,
        "size": stat.st_size,
        "sizeFormatted": format_bytes(stat.st_size),
        "modified": stat.st_mtime,
        "isVideo": is_video_file(ext),
        "isAudio": is_audio_file(ext),
        "exists": True,
    }


def get_directory_stats() -> Dict[str, Any]:
    """File count and total size per working directory (first 10 names listed)."""
    settings = get_settings()
    directories = {
        "uploads": settings.uploads_dir,
        "output": settings.output_dir,
        "temp": settings.temp_dir,
        "logs": settings.logs_dir,
    }

    stats = {}
    for name, directory in directories.items():
        if not directory.exists():
            stats[name] = {"path": str(directory), "fileCount": 0, "totalSize": 0,
                           "totalSizeFormatted": format_bytes(0), "files": []}
            continue
        files = sorted(p for p in directory.iterdir() if p.is_file())
        total_size = sum(p.stat().st_size for p in files)
        stats[name] = {
            "path": str(directory),
            "fileCount": len(files),
            "totalSize": total_size,
            "totalSizeFormatted": format_bytes(total_size),
            "files": [p.name for p in files[:10]],
        }
    return stats


def format_bytes(num_bytes: int, decimals: int = 2) -> str:
    if num_bytes == 0:
        return "0 Bytes"
    sizes = ["Bytes", "KB", "MB", "GB", "TB"]
    i = min(int(math.floor(math.log(num_bytes, 1024))), len(sizes) - 1)
    value = round(num_bytes / (1024 ** i), max(decimals, 0))
    return f"{value:g} {sizes[i]}"


def is_video_file(extension: str) -> bool:
    return extension.lower() in VIDEO_EXTENSIONS


def is_audio_file(extension: str) -> bool:
    return extension.lower() in AUDIO_EXTENSIONS
