"""
FFmpeg / FFprobe subprocess helpers.

Pure sync. Async callers offload these to a thread via asyncio.to_thread.
"""
import json
import logging
import subprocess
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from summarizer.core.config import get_settings
from summarizer.core.exceptions import CollaboratorError

logger = logging.getLogger(__name__)

STDERR_TAIL_CHARS = 1000


def run_command(cmd: List[str], timeout: int, tool: str = "ffmpeg") -> subprocess.CompletedProcess:
    """
    Run an ffmpeg/ffprobe command.

    Raises:
        CollaboratorError: On a missing binary, timeout or non-zero exit.
            The stderr tail is preserved in the message.
    """
    start_time = time.time()
    logger.debug(f"Executing {tool}: {' '.join(cmd)}")

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError:
        raise CollaboratorError(tool, f"{cmd[0]} not found on PATH", classification="unavailable")
    except subprocess.TimeoutExpired:
        raise CollaboratorError(tool, f"timed out after {timeout}s", classification="timeout")

    duration = time.time() - start_time

    if result.returncode != 0:
        stderr_tail = (result.stderr or "")[-STDERR_TAIL_CHARS:].strip()
        logger.error(f"{tool} failed (rc={result.returncode}, {duration:.2f}s): {stderr_tail}")
        raise CollaboratorError(tool, f"exit code {result.returncode}: {stderr_tail}")

    logger.debug(f"{tool} completed in {duration:.2f}s")
    return result


def probe(path: Path) -> Dict[str, Any]:
    """Raw ffprobe JSON (format + streams) for a media file."""
    settings = get_settings()
    cmd = [
        settings.ffprobe_binary,
        "-v", "error",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(path),
    ]
    result = run_command(cmd, timeout=settings.ffprobe_timeout, tool="ffprobe")
    try:
        return json.loads(result.stdout or "{}")
    except json.JSONDecodeError as e:
        raise CollaboratorError("ffprobe", f"invalid JSON output: {e}")


def find_stream(probe_data: Dict[str, Any], codec_type: str) -> Optional[Dict[str, Any]]:
    for stream in probe_data.get("streams", []):
        if stream.get("codec_type") == codec_type:
            return stream
    return None


def parse_fps(frame_rate: Optional[str]) -> float:
    """Parse an ffprobe frame rate such as "30000/1001" into a float."""
    if not frame_rate:
        return 0.0
    if "/" in frame_rate:
        numerator, denominator = frame_rate.split("/", 1)
        try:
            if float(denominator) == 0:
                return 0.0
            return round(float(numerator) / float(denominator), 2)
        except ValueError:
            return 0.0
    try:
        return float(frame_rate)
    except ValueError:
        return 0.0


def to_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def format_duration(seconds: float) -> str:
    """Format seconds as H:MM:SS, or M:SS under an hour."""
    seconds = max(0.0, seconds or 0.0)
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    remaining = int(seconds % 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{remaining:02d}"
    return f"{minutes}:{remaining:02d}"
