"""
Prompt construction for moment detection.
"""
from typing import Any, Dict, List, Optional

MOMENT_CATEGORIES = [
    "workflow_phase",
    "data_review",
    "navigation",
    "decision",
    "information_display",
    "planning",
]

CONTENT_TYPES = ["tutorial", "demo", "presentation", "screen_recording", "meeting", "other"]

JSON_HEADER = """IMPORTANT: You must respond with ONLY valid JSON. Do not include any explanations, notes, or text outside the JSON structure.

"""

SYSTEM_PROMPT = (
    "You are an expert at analyzing screen recordings and identifying the key moments "
    "of a user's workflow. You always answer with a single JSON object."
)

RESPONSE_FORMAT = """{
  "keyMoments": [
    {
      "title": "Short descriptive title",
      "description": "What happens in this moment",
      "startTime": 12.5,
      "endTime": 45.0,
      "importance": 8,
      "category": "workflow_phase|data_review|navigation|decision|information_display|planning",
      "reason": "Why this moment matters",
      "workflowContext": "How it fits into the overall workflow"
    }
  ],
  "summary": "One paragraph summary of the recording",
  "totalOriginalDuration": 300,
  "recommendedApproach": "How the summary video should be assembled",
  "contentType": "tutorial|demo|presentation|screen_recording|meeting|other",
  "workflowPhases": ["Phase names in order"]
}"""


def format_timestamp(seconds: float) -> str:
    """M:SS.s"""
    mins = int(seconds // 60)
    secs = seconds - mins * 60
    return f"{mins}:{secs:04.1f}"


def format_segment_lines(segments: List[Dict[str, Any]]) -> str:
    lines = []
    for seg in segments:
        start = seg.get("start") or 0
        end = seg.get("end") or 0
        text = (seg.get("text") or "").strip()
        lines.append(f"[{format_timestamp(start)} - {format_timestamp(end)}] {text}")
    return "\n".join(lines)


def build_moment_prompt(
    full_text: str,
    segments: List[Dict[str, Any]],
    video_duration: Optional[float],
    extra_instructions: Optional[str] = None,
) -> str:
    """
    Build the user prompt asking for the key-moment JSON document.

    Args:
        full_text: Full transcript text
        segments: Timestamped transcript segments (start, end, text)
        video_duration: Source duration in seconds, when known
        extra_instructions: Caller-supplied additions appended at the end
    """
    duration_line = (
        f"The video is {video_duration:.1f} seconds long ({format_timestamp(video_duration)})."
        if video_duration else "The video duration is unknown; infer it from the transcript."
    )

    prompt = f"""{JSON_HEADER}Analyze this screen recording transcript and identify the key moments of the user's workflow.

{duration_line}

FULL TRANSCRIPT:
{full_text}

TIMESTAMPED SEGMENTS:
{format_segment_lines(segments)}

GUIDELINES:
- Identify between 3 and 8 key moments that together preserve the complete workflow
- Be liberal: include every distinct phase, review, navigation or decision point
- startTime and endTime are numbers of SECONDS from the start of the video (not minutes, not strings)
- Every moment must satisfy 0 <= startTime < endTime <= video duration
- importance is an integer from 1 (minor) to 10 (essential)
- category is one of: {", ".join(MOMENT_CATEGORIES)}
- contentType is one of: {", ".join(CONTENT_TYPES)}

Respond with a JSON object in exactly this format:
{RESPONSE_FORMAT}
"""
    if extra_instructions:
        prompt += f"\nADDITIONAL INSTRUCTIONS:\n{extra_instructions}\n"
    return prompt
