import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

from .errors import ConfigurationError
from .planner import validate_limits
from .writer import MAX_URLS_PER_FILE

DEFAULT_BATCH_SIZE = 1001


@dataclass(frozen=True)
class PingSettings:
    google: bool = True
    yahoo: bool = False  # needs yahoo_app_id
    yahoo_app_id: Optional[str] = None
    msn: bool = False
    ask: bool = False
    timeout: float = 10.0

    @property
    def enabled(self) -> bool:
        return self.google or (self.yahoo and bool(self.yahoo_app_id)) or self.msn or self.ask


@dataclass(frozen=True)
class SitemapConfig:
    """Settings shared by every source of a generator run.

    :param base_url: Public site root, e.g. `https://example.com`
    :param document_root: Directory served at `base_url`
    :param path: Sub-directory of `document_root` (and of `base_url`) receiving the files
    :param max_per_file: URLs per sitemap file, up to the protocol limit of 50k
    :param batch_size: Records fetched per request, not greater than `max_per_file`
    :param compress: Write `.xml.gz` files
    :param include_index_self: List the index among its own entries
    :param ping: Search engines to notify after a successful run
    """
    base_url: str
    document_root: Union[str, Path]
    path: str = 'sitemaps'
    max_per_file: int = MAX_URLS_PER_FILE
    batch_size: int = DEFAULT_BATCH_SIZE
    compress: bool = True
    indent: int = 2
    index_name: str = 'sitemap_index'
    include_index_self: bool = False
    ping: PingSettings = field(default_factory=PingSettings)

    def __post_init__(self):
        if not self.base_url:
            raise ConfigurationError('Base URL must be specified')
        if not self.document_root:
            raise ConfigurationError('Document root must be specified')
        if self.max_per_file > MAX_URLS_PER_FILE:
            raise ConfigurationError(f'Max URLs per file cannot exceed {MAX_URLS_PER_FILE}')
        validate_limits(self.max_per_file, self.batch_size)
        if self.indent < 0:
            raise ConfigurationError('Indent cannot be negative')
        object.__setattr__(self, 'base_url', self.base_url.rstrip('/'))
        object.__setattr__(self, 'document_root', Path(self.document_root))

    @property
    def output_dir(self) -> Path:
        return self.document_root / self.path if self.path else self.document_root

    def public_url(self, file_path: Path) -> str:
        """Returns the URL a generated file is served at."""
        parts = [self.base_url, self.path.strip('/'), file_path.name]
        return '/'.join(part for part in parts if part)

    @classmethod
    def from_env(cls, **overrides) -> 'SitemapConfig':
        """Reads `SITEMAP_*` variables, from a `.env` file too. Keyword arguments take precedence."""
        load_dotenv()
        values = {
            'base_url': os.getenv('SITEMAP_BASE_URL', ''),
            'document_root': os.getenv('SITEMAP_DOCUMENT_ROOT', ''),
            'path': os.getenv('SITEMAP_PATH', 'sitemaps'),
            'max_per_file': int(os.getenv('SITEMAP_MAX_PER_FILE', MAX_URLS_PER_FILE)),
            'batch_size': int(os.getenv('SITEMAP_BATCH_SIZE', DEFAULT_BATCH_SIZE)),
            'compress': _env_flag('SITEMAP_COMPRESS', True),
            'ping': PingSettings(
                google=_env_flag('SITEMAP_PING_GOOGLE', True),
                yahoo=_env_flag('SITEMAP_PING_YAHOO', False),
                yahoo_app_id=os.getenv('SITEMAP_YAHOO_APP_ID') or None,
                msn=_env_flag('SITEMAP_PING_MSN', False),
                ask=_env_flag('SITEMAP_PING_ASK', False),
            ),
        }
        values.update(overrides)
        return cls(**values)


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')
