import gzip
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

import pytest
from lxml import etree

from sitemap_generator import SitemapConfig, PingSettings

SM = '{http://www.sitemaps.org/schemas/sitemap/0.9}'


@dataclass
class Article:
    id: Optional[int]
    updated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class RecordingSource:
    """In-memory record source that remembers every page request."""

    def __init__(self, records) -> None:
        self.records = list(records)
        self.calls: list[tuple[int, int]] = []

    def count(self) -> int:
        return len(self.records)

    def fetch_page(self, offset: int, limit: int):
        self.calls.append((offset, limit))
        return self.records[offset:offset + limit]


def read_xml(path: Path) -> bytes:
    if path.suffix == '.gz':
        with gzip.open(path, 'rb') as f:
            return f.read()
    return path.read_bytes()


def parse_xml(path: Path) -> etree._Element:
    return etree.fromstring(read_xml(path))


def locations(path: Path) -> list[str]:
    return [loc.text for loc in parse_xml(path).iter(f'{SM}loc')]


@pytest.fixture
def config(tmp_path: Path) -> SitemapConfig:
    return SitemapConfig(
        base_url='https://example.com/',
        document_root=tmp_path,
        max_per_file=10,
        batch_size=4,
        compress=False,
        ping=PingSettings(google=False),
    )
