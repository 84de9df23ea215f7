from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Union

SITEMAP_NS = 'http://www.sitemaps.org/schemas/sitemap/0.9'
VIDEO_NS = 'http://www.google.com/schemas/sitemap-video/1.1'

Timestamp = Union[datetime, date]


class ChangeFrequency(str, Enum):
    ALWAYS = 'always'
    HOURLY = 'hourly'
    DAILY = 'daily'
    WEEKLY = 'weekly'
    MONTHLY = 'monthly'
    YEARLY = 'yearly'
    NEVER = 'never'

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class VideoExtension:
    """Fields of a <video:video> block. Every field is optional, empty ones are not written."""
    content_url: Optional[str] = None
    player_url: Optional[str] = None
    allow_embed: bool = True
    thumbnail_url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    rating: Optional[float] = None
    view_count: Optional[int] = None
    publication_date: Optional[Timestamp] = None
    duration: Optional[int] = None
    tags: tuple[str, ...] = ()
    family_friendly: Optional[bool] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class SitemapEntry:
    """One <url> (or <sitemap> in an index) element.

    :param location: Absolute URL of the page, required
    :param last_modified: Modification time, written as <lastmod>
    :param change_frequency: Free text or a ChangeFrequency member
    :param priority: A float from 0 to 1.0
    :param video: An optional video extension block
    """
    location: str
    last_modified: Optional[Timestamp] = None
    change_frequency: Optional[Union[ChangeFrequency, str]] = None
    priority: Optional[float] = None
    video: Optional[VideoExtension] = None

    def __post_init__(self):
        if not self.location:
            raise ValueError('Sitemap entry requires a location')
        if self.priority is not None and not 0 <= self.priority <= 1:
            raise ValueError(f'Priority must be within 0..1, got {self.priority}')


@dataclass(frozen=True)
class GeneratedFile:
    """A closed sitemap part. `modified` is read from the filesystem after the sink was closed."""
    path: Optional[Path]
    part: int
    url_count: int
    modified: Optional[datetime] = field(default=None, compare=False)


def format_timestamp(value: Timestamp) -> str:
    """Formats a timestamp as the W3C subset of ISO 8601: `%Y-%m-%dT%H:%M:%S±HH:MM`.

    Naive datetimes are taken as local time. Plain dates are written as `YYYY-MM-DD`.

    :param value: A datetime or a date

    :return: The formatted string
    """
    if not isinstance(value, datetime):
        return value.isoformat()

    if value.tzinfo is None or value.utcoffset() is None:
        value = value.astimezone()

    offset_minutes = int(value.utcoffset().total_seconds()) // 60
    sign = '-' if offset_minutes < 0 else '+'
    hours, minutes = divmod(abs(offset_minutes), 60)
    return f'{value.strftime("%Y-%m-%dT%H:%M:%S")}{sign}{hours:02d}:{minutes:02d}'
