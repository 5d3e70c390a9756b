# app/ticket/media.py
import re

YOUTUBE_ID = re.compile(
    r"(?:youtube\.com/(?:[^/]+/.+/|(?:v|e(?:mbed)?)/|.*[?&]v=)|youtu\.be/)([^\"&?/\s]{11})"
)


def youtube_id(url: str | None) -> str | None:
    """Extract the 11-character video id from a watch, embed or youtu.be link."""
    if not url:
        return None
    match = YOUTUBE_ID.search(url)
    return match.group(1) if match else None


def youtube_thumbnail(url: str | None) -> str | None:
    video = youtube_id(url)
    return f"https://img.youtube.com/vi/{video}/mqdefault.jpg" if video else None


def youtube_embed(url: str | None) -> str | None:
    video = youtube_id(url)
    return f"https://www.youtube.com/embed/{video}" if video else None
