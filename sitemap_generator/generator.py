import shutil
from dataclasses import dataclass, field
from itertools import islice
from typing import Any, Optional, Union

from loguru import logger

from .config import SitemapConfig
from .entries import ChangeFrequency, GeneratedFile, SitemapEntry
from .errors import ConfigurationError, RecordError
from .index import IndexBuilder
from .notify import PingResult, SearchEngineNotifier
from .planner import plan_batches, validate_limits
from .records import RecordAdapter, RecordSource
from .writer import MAX_URLS_PER_FILE, DocumentWriter


@dataclass(frozen=True)
class SourceSpec:
    """One kind of record and how it becomes a set of sitemap files.

    :param source: Gives the record count and pages of records
    :param adapter: Reads identifier, timestamp and overrides from a record
    :param prefix: File name prefix, e.g. `sitemap_products` gives `sitemap_products.xml.gz`...
    :param path: URL path between the base URL and the identifier. None takes identifiers as full URLs
    :param batch_size: Records per fetch, the generator's default when None
    :param max_per_file: URLs per file, the generator's default when None
    :param change_frequency: Written for every record unless the adapter gives one
    :param priority: Written for every record unless the adapter gives one
    :param video: Allow video blocks in the entries
    """
    source: RecordSource
    adapter: RecordAdapter
    prefix: str
    path: Optional[str] = None
    batch_size: Optional[int] = None
    max_per_file: Optional[int] = None
    change_frequency: Optional[Union[ChangeFrequency, str]] = ChangeFrequency.WEEKLY
    priority: Optional[float] = None
    video: bool = False

    def to_entry(self, record: Any, base_url: str) -> SitemapEntry:
        adapter = self.adapter
        identifier = adapter.identifier(record)
        if identifier is None or identifier == '':
            raise RecordError(f'Record {record!r} of "{self.prefix}" has no identifier')

        if self.path is None:
            location = str(identifier)
        else:
            location = '/'.join(part for part in (base_url, self.path.strip('/'), str(identifier).lstrip('/')) if part)

        frequency = adapter.change_frequency(record) if adapter.change_frequency else None
        priority = adapter.priority(record) if adapter.priority else None
        return SitemapEntry(
            location,
            last_modified=adapter.timestamp(record) if adapter.timestamp else None,
            change_frequency=frequency if frequency is not None else self.change_frequency,
            priority=priority if priority is not None else self.priority,
            video=adapter.video(record) if adapter.video else None,
        )


@dataclass
class GenerationResult:
    files: list[GeneratedFile] = field(default_factory=list)
    index_files: list[GeneratedFile] = field(default_factory=list)
    index_url: Optional[str] = None
    notifications: list[PingResult] = field(default_factory=list)

    @property
    def url_count(self) -> int:
        return sum(file.url_count for file in self.files)


class SitemapGenerator:
    """Writes the sitemap files of every registered source, then the index, then pings search engines.

    Sources are processed one after the other, each one batch by batch in offset order, so memory
    holds a single batch of records at a time.
    """

    def __init__(self, config: SitemapConfig, notifier: Optional[SearchEngineNotifier] = None) -> None:
        self.config = config
        self.notifier = notifier
        self.sources: list[SourceSpec] = []

    @property
    def output_dir(self):
        return self.config.output_dir

    def add(self, spec: SourceSpec) -> 'SitemapGenerator':
        """Registers a source. Everything that can be checked without fetching is checked here.

        :raise ConfigurationError: If the source cannot work with these settings

        :return: The generator, to chain calls
        """
        if not isinstance(spec.source, RecordSource):
            raise ConfigurationError(f'"{spec.prefix}" source must provide count() and fetch_page()')
        if not isinstance(spec.adapter, RecordAdapter):
            raise ConfigurationError(f'"{spec.prefix}" needs a RecordAdapter with an identifier accessor')
        if not spec.prefix:
            raise ConfigurationError('Source needs a file name prefix')
        if spec.prefix == self.config.index_name or any(s.prefix == spec.prefix for s in self.sources):
            raise ConfigurationError(f'File name prefix "{spec.prefix}" is already used')

        max_per_file, batch_size = self._limits(spec)
        if max_per_file > MAX_URLS_PER_FILE:
            raise ConfigurationError(f'Max URLs per file cannot exceed {MAX_URLS_PER_FILE}')
        validate_limits(max_per_file, batch_size)

        self.sources.append(spec)
        return self

    def clean(self) -> 'SitemapGenerator':
        if self.output_dir.exists():
            shutil.rmtree(self.output_dir)
        return self

    def generate(self) -> GenerationResult:
        """Runs the whole generation.

        A failing record or write stops the run: the current file is closed so it stays a valid
        (gzip) file, files finished before remain on disk, and the error propagates. A failing ping
        only ends up as a warning in the result.

        :return: Generated files, index files and ping results
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        result = GenerationResult()

        for spec in self.sources:
            result.files.extend(self._generate_source(spec))

        index = IndexBuilder(self.output_dir / self.config.index_name, url_for=self.config.public_url,
                             compress=self.config.compress, max_per_file=self.config.max_per_file,
                             indent=self.config.indent, include_self=self.config.include_index_self)
        result.index_files = index.build(result.files)
        result.index_url = self.config.public_url(result.index_files[0].path)
        logger.info('Wrote {} URL(s) in {} file(s), index at {}',
                    result.url_count, len(result.files), result.index_url)

        result.notifications = self._notify(result.index_url)
        return result

    def _limits(self, spec: SourceSpec) -> tuple[int, int]:
        return (spec.max_per_file or self.config.max_per_file,
                spec.batch_size or self.config.batch_size)

    def _generate_source(self, spec: SourceSpec) -> list[GeneratedFile]:
        max_per_file, batch_size = self._limits(spec)
        count = spec.source.count()
        plan = plan_batches(count, max_per_file, batch_size)
        if not plan:
            logger.info('Source "{}" has no records, no sitemap written', spec.prefix)
            return []

        logger.info('Source "{}": {} record(s) in {} batch(es), {} file(s)',
                    spec.prefix, count, len(plan), plan[-1].file_index + 1)
        writer = DocumentWriter(self.output_dir / spec.prefix, compress=self.config.compress,
                                video=spec.video, max_per_file=max_per_file, indent=self.config.indent)
        with writer:
            for batch in plan:
                if batch.file_index != writer.part:
                    writer.rotate()
                logger.debug('Fetching "{}" records {}..{}', spec.prefix, batch.offset, batch.end)
                records = spec.source.fetch_page(batch.offset, batch.limit)
                for record in islice(records, batch.limit):
                    writer.add_entry(spec.to_entry(record, self.config.base_url))

        return writer.files

    def _notify(self, index_url: str) -> list[PingResult]:
        notifier = self.notifier
        if notifier is None:
            if not self.config.ping.enabled:
                return []
            notifier = SearchEngineNotifier(self.config.ping)
        try:
            return notifier.notify(index_url)
        except Exception as e:
            # sitemaps and index are complete on disk here
            logger.warning('Search engine notification failed: {}', e)
            return [PingResult('notifier', index_url, ok=False, error=str(e))]
