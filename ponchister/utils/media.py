import re
from typing import Optional

YOUTUBE_ID_PATTERN = re.compile(r"^.*(?:youtu\.be/|v/|u/\w/|embed/|watch\?v=|&v=)([^#&?]*).*")
YOUTUBE_ID_LENGTH = 11


def extract_youtube_id(url: str) -> Optional[str]:
    """Return the 11-character video id embedded in a YouTube URL, or None."""
    match = YOUTUBE_ID_PATTERN.match((url or '').strip())
    if not match:
        return None
    video_id = match.group(1)
    return video_id if len(video_id) == YOUTUBE_ID_LENGTH else None
