"""Build the context string an item chat is grounded on."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from src.tokens.estimator import estimate_sectioned_tokens
from src.transcripts.models import Transcript
from src.transcripts.normalizer import to_timestamped_text

RAW_TEXT_PREVIEW_CHARS = 2000


class ContentType(StrEnum):
    """Kinds of saved items."""

    BOOKMARK = "bookmark"
    YOUTUBE = "youtube"
    YOUTUBE_SHORT = "youtube_short"
    X = "x"
    GITHUB = "github"
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    THREADS = "threads"
    TIKTOK = "tiktok"
    REDDIT = "reddit"
    AMAZON = "amazon"
    LINKEDIN = "linkedin"
    IMAGE = "image"
    PDF = "pdf"
    VIDEO = "video"
    AUDIO = "audio"
    PODCAST = "podcast"
    NOTE = "note"
    ARTICLE = "article"
    PRODUCT = "product"
    BOOK = "book"
    COURSE = "course"
    MOVIE = "movie"
    TV_SHOW = "tv_show"


CONTENT_TYPE_LABELS: dict[ContentType, str] = {
    ContentType.BOOKMARK: "Bookmark",
    ContentType.YOUTUBE: "YouTube Video",
    ContentType.YOUTUBE_SHORT: "YouTube Short",
    ContentType.X: "X/Twitter Post",
    ContentType.GITHUB: "GitHub Repository",
    ContentType.INSTAGRAM: "Instagram Post",
    ContentType.FACEBOOK: "Facebook Post",
    ContentType.THREADS: "Threads Post",
    ContentType.TIKTOK: "TikTok Video",
    ContentType.REDDIT: "Reddit Post",
    ContentType.AMAZON: "Amazon Product",
    ContentType.LINKEDIN: "LinkedIn Post",
    ContentType.IMAGE: "Image",
    ContentType.PDF: "PDF Document",
    ContentType.VIDEO: "Video",
    ContentType.AUDIO: "Audio",
    ContentType.PODCAST: "Podcast Episode",
    ContentType.NOTE: "Note",
    ContentType.ARTICLE: "Article",
    ContentType.PRODUCT: "Product",
    ContentType.BOOK: "Book",
    ContentType.COURSE: "Course",
    ContentType.MOVIE: "Movie",
    ContentType.TV_SHOW: "TV Show",
}

_FIELD_LABELS: dict[str, str] = {
    "description": "Description",
    "url": "URL",
    "transcript": "Transcript",
    "image_descriptions": "Image Descriptions",
    "content": "Content",
    "raw_text": "Text",
    "tags": "Tags",
    "author": "Author",
    "username": "Username",
    "domain": "Domain",
    "video_url": "Video",
    "image_urls": "Images",
}


@dataclass
class ContentItem:
    """A saved item as seen by the chat core."""

    id: str
    content_type: ContentType = ContentType.BOOKMARK
    title: str | None = None
    url: str | None = None
    desc: str | None = None
    content: str | None = None
    raw_text: str | None = None
    tags: list[str] = field(default_factory=list)
    author: str | None = None
    username: str | None = None
    domain: str | None = None
    published_date: str | None = None
    video_url: str | None = None
    image_urls: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ImageDescription:
    image_url: str
    description: str


@dataclass
class ContextMetadata:
    included_fields: list[str]
    word_count: int
    estimated_tokens: int
    has_transcript: bool
    has_image_descriptions: bool
    content_type: ContentType


@dataclass
class ContextResult:
    context_string: str
    metadata: ContextMetadata


def _metadata_lines(item: ContentItem, included: list[str]) -> list[str]:
    lines: list[str] = []
    if item.author:
        lines.append(f"Author: {item.author}")
        included.append("author")
    if item.username:
        lines.append(f"Username: @{item.username}")
        included.append("username")
    if item.domain:
        lines.append(f"Domain: {item.domain}")
        included.append("domain")
    if item.published_date:
        lines.append(f"Published: {item.published_date}")
        included.append("published_date")
    return lines


def build_item_context(
    item: ContentItem,
    transcript: Transcript | None = None,
    image_descriptions: Sequence[ImageDescription] = (),
    now: datetime | None = None,
) -> ContextResult:
    """Render *item* and its attachments into one context string.

    Transcripts with segments are rendered in ``[MM:SS]`` form so the model
    can point at where in the video something was said.
    """
    included: list[str] = []
    parts: list[str] = []

    now = now or datetime.now(UTC)
    parts.append(f"Current Date/Time: {now.isoformat()}")
    parts.append("")

    parts.append(f"Content Type: {CONTENT_TYPE_LABELS.get(item.content_type, item.content_type)}")
    included.append("content_type")

    if item.title:
        parts.append(f"Title: {item.title}")
        included.append("title")
    if item.url:
        parts.append(f"URL: {item.url}")
        included.append("url")
    if item.desc:
        parts.append(f"Description: {item.desc}")
        included.append("description")
    parts.append("")

    meta = _metadata_lines(item, included)
    if meta:
        parts.append("\n".join(meta))
        parts.append("")

    if item.video_url:
        parts.append(f"Video URL: {item.video_url}")
        included.append("video_url")
    if item.image_urls:
        parts.append(f"Images: {len(item.image_urls)} image(s)")
        included.append("image_urls")

    has_transcript = False
    if transcript is not None and not transcript.is_empty:
        has_transcript = True
        transcript_text = to_timestamped_text(transcript)
        parts.append(f"\n--- Video Transcript ({len(transcript_text.split())} words) ---")
        parts.append(transcript_text)
        parts.append("--- End Transcript ---\n")
        included.append("transcript")

    if image_descriptions:
        count = len(image_descriptions)
        parts.append(f"\n--- Image Descriptions ({count} image{'s' if count > 1 else ''}) ---")
        for idx, desc in enumerate(image_descriptions, 1):
            parts.append(f"\nImage {idx} ({desc.image_url}):")
            parts.append(desc.description)
        parts.append("--- End Image Descriptions ---\n")
        included.append("image_descriptions")

    if item.content:
        parts.append("\n--- Content ---")
        parts.append(item.content)
        parts.append("--- End Content ---\n")
        included.append("content")

    if item.raw_text and item.raw_text != item.content:
        parts.append("\n--- Extracted Text (Preview) ---")
        parts.append(item.raw_text[:RAW_TEXT_PREVIEW_CHARS])
        if len(item.raw_text) > RAW_TEXT_PREVIEW_CHARS:
            parts.append("\n[Text truncated for length...]")
        parts.append("--- End Extracted Text ---\n")
        included.append("raw_text")

    if item.tags:
        parts.append(f"\nTags: {', '.join(item.tags)}")
        included.append("tags")

    context_string = "\n".join(parts)
    estimate = estimate_sectioned_tokens(context_string)

    return ContextResult(
        context_string=context_string,
        metadata=ContextMetadata(
            included_fields=included,
            word_count=estimate.word_count,
            estimated_tokens=estimate.estimated_tokens,
            has_transcript=has_transcript,
            has_image_descriptions=bool(image_descriptions),
            content_type=item.content_type,
        ),
    )


def format_context_metadata(metadata: ContextMetadata) -> str:
    """One-line summary, e.g. ``1,204 words • with transcript • URL, Transcript``."""
    parts = [f"{metadata.word_count:,} words"]
    if metadata.has_transcript:
        parts.append("with transcript")
    if metadata.has_image_descriptions:
        parts.append("with image descriptions")

    labels = [
        _FIELD_LABELS.get(f, f)
        for f in metadata.included_fields
        if f not in ("content_type", "title")
    ]
    if labels:
        parts.append(", ".join(labels))
    return " • ".join(parts)
