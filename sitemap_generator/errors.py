class SitemapError(Exception):
    """Base class for everything this package raises on purpose."""


class ConfigurationError(SitemapError, ValueError):
    """Settings or sources that cannot work. Raised before any output is written."""


class RecordError(SitemapError):
    """A fetched record could not be turned into a sitemap entry."""


class WriterStateError(SitemapError):
    """A writer or sink was used out of order (not opened yet, opened twice, already closed)."""


class MarkupError(SitemapError):
    """Unbalanced tags, e.g. closing a tag that is not the innermost open one."""
