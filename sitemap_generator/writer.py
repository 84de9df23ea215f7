from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional, Union

from loguru import logger

from .entries import SITEMAP_NS, VIDEO_NS, GeneratedFile, SitemapEntry, VideoExtension, format_timestamp
from .errors import ConfigurationError, WriterStateError
from .markup import XmlMarkup
from .sink import OutputSink

MAX_URLS_PER_FILE = 50_000  # sitemap protocol limit


class WriterState(Enum):
    UNOPENED = 'unopened'
    OPEN = 'open'
    CLOSED = 'closed'


class DocumentWriter(XmlMarkup):
    """Streams a sitemap (or a sitemap index) and rotates to a new part when a part is full.

    With a `filename` every part is a file of its own: `<filename>.xml`, `<filename>_1.xml`,
    `<filename>_2.xml`... (plus `.gz` when compressed). Without one, all parts go one after the other
    into `stream` or into the sink given to `open()`, each with its own declaration and root element.

    Usage:
        with DocumentWriter('public/sitemaps/sitemap_products', compress=True) as writer:
            writer.add_url('https://example.com/products/1', priority=0.5)

    :param filename: Path prefix of the part files
    :param stream: A binary stream to write into when there is no filename
    :param compress: Gzip each part (adds `.gz` to file names)
    :param index: Write a sitemap index (<sitemapindex>/<sitemap>) instead of a <urlset>
    :param video: Declare the video namespace and allow entries with a video block
    :param max_per_file: Entries per part before rotating
    :param indent: Spaces per nesting level, 0 writes compact XML
    """

    def __init__(self, filename: Union[str, Path, None] = None, *, stream: Optional[BinaryIO] = None,
                 compress: bool = False, index: bool = False, video: bool = False,
                 max_per_file: int = MAX_URLS_PER_FILE, indent: int = 2) -> None:
        if max_per_file <= 0:
            raise ConfigurationError(f'Max URLs per file must be positive, got {max_per_file}')
        if index and video:
            raise ConfigurationError('A sitemap index cannot carry video entries')

        super().__init__(indent=indent)
        self.filename = Path(filename) if filename is not None else None
        self.stream = stream
        self.compress = compress
        self.index = index
        self.video = video
        self.max_per_file = max_per_file

        self.state = WriterState.UNOPENED
        self.part = 0
        self.url_count = 0
        self.files: list[GeneratedFile] = []
        self._root_tag = ''
        self._root_attrs: dict = {}

    @property
    def root_tag(self) -> str:
        return 'sitemapindex' if self.index else 'urlset'

    @property
    def entry_tag(self) -> str:
        return 'sitemap' if self.index else 'url'

    @property
    def paths(self) -> list[Path]:
        return [file.path for file in self.files if file.path is not None]

    def part_path(self, part: int) -> Path:
        """Returns the file path of a part: no suffix for the first one, `_<part>` for the rest."""
        if self.filename is None:
            raise WriterStateError('Writer has no filename to build part paths from')
        name = self.filename.name
        if part:
            name += f'_{part}'
        name += '.xml'
        if self.compress:
            name += '.gz'
        return self.filename.with_name(name)

    def root_attributes(self) -> dict:
        attrs = {'xmlns': SITEMAP_NS}
        if self.video:
            attrs['xmlns:video'] = VIDEO_NS
        return attrs

    def open(self, sink: Optional[OutputSink] = None, root_tag: Optional[str] = None,
             root_attrs: Optional[dict] = None) -> 'DocumentWriter':
        """Opens the first part: writes the XML declaration and opens the root element.

        :param sink: Sink for the first part. Built from `filename` or `stream` when omitted
        :param root_tag: Root element name, `urlset` or `sitemapindex` by default
        :param root_attrs: Root element attributes, the sitemap namespace(s) by default

        :raise WriterStateError: If the writer was already opened

        :return: The writer itself
        """
        if self.state is not WriterState.UNOPENED:
            raise WriterStateError(f'Writer is already {self.state.value}')

        self._root_tag = root_tag or self.root_tag
        self._root_attrs = self.root_attributes() if root_attrs is None else dict(root_attrs)
        self.sink = sink if sink is not None else self._new_sink()
        self.state = WriterState.OPEN
        self._start_document()
        return self

    def add_url(self, location: str, **fields) -> None:
        self.add_entry(SitemapEntry(location, **fields))

    def add_entry(self, entry: SitemapEntry) -> None:
        """Writes one entry, rotating to a new part first when the current one is full."""
        self._require_open()
        if entry.video is not None and not self.video:
            raise ConfigurationError('Entry has a video block but the writer was created without video=True')

        if self.url_count >= self.max_per_file:
            self.rotate()

        self.open_tag(self.entry_tag)
        self.text_tag('loc', entry.location)
        if entry.last_modified is not None:
            self.text_tag('lastmod', format_timestamp(entry.last_modified))
        if not self.index:
            if entry.change_frequency is not None:
                self.text_tag('changefreq', entry.change_frequency)
            if entry.priority is not None:
                self.text_tag('priority', entry.priority)
            if entry.video is not None:
                self._write_video(entry.video)
        self.close_tag(self.entry_tag)
        self.url_count += 1

    def rotate(self) -> None:
        """Ends the current part and continues in the next one under the same root element."""
        self._require_open()
        self._finish_part(close_sink=self.filename is not None)
        self.part += 1
        if self.filename is not None:
            # the finished part is already in self.files
            self.state = WriterState.CLOSED
            self.sink = self._new_sink()
            self.state = WriterState.OPEN
        logger.debug('Rotated to part {} of {}', self.part, self.filename or 'stream')
        self._start_document()

    def close(self) -> None:
        """Closes every open tag and the sink. Closing twice, or a writer never opened, does nothing."""
        if self.state is not WriterState.OPEN:
            self.state = WriterState.CLOSED
            return
        self.state = WriterState.CLOSED
        self._finish_part(close_sink=True)

    def _require_open(self) -> None:
        if self.state is not WriterState.OPEN:
            raise WriterStateError(f'Writer is {self.state.value}')

    def _new_sink(self) -> OutputSink:
        if self.filename is not None:
            return OutputSink(self.part_path(self.part), compress=self.compress)
        if self.stream is not None:
            return OutputSink(self.stream, compress=self.compress)
        raise WriterStateError('Writer needs a filename, a stream or a sink to write to')

    def _start_document(self) -> None:
        self.url_count = 0
        self.declaration()
        self.open_tag(self._root_tag, self._root_attrs)

    def _finish_part(self, close_sink: bool) -> None:
        try:
            self.close_all()
        finally:
            path = self.sink.path
            if close_sink:
                self.sink.close()
            modified = None
            if path is not None and close_sink:
                modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            self.files.append(GeneratedFile(path, self.part, self.url_count, modified))

    def _write_video(self, video: VideoExtension) -> None:
        self.open_tag('video:video')
        if video.content_url:
            self.text_tag('video:content_loc', video.content_url)
        if video.player_url:
            self.text_tag('video:player_loc', video.player_url,
                          {'allow_embed': 'yes' if video.allow_embed else 'no'})
        if video.thumbnail_url:
            self.text_tag('video:thumbnail_loc', video.thumbnail_url)
        if video.title:
            self.text_tag('video:title', video.title)
        if video.description:
            self.text_tag('video:description', video.description)
        if video.rating is not None:
            self.text_tag('video:rating', video.rating)
        if video.view_count is not None:
            self.text_tag('video:view_count', video.view_count)
        if video.publication_date is not None:
            self.text_tag('video:publication_date', format_timestamp(video.publication_date))
        if video.duration is not None:
            self.text_tag('video:duration', video.duration)
        for tag in video.tags:
            self.text_tag('video:tag', tag)
        if video.family_friendly is not None:
            self.text_tag('video:family_friendly', 'yes' if video.family_friendly else 'no')
        if video.category:
            self.text_tag('video:category', video.category)
        self.close_tag('video:video')

    def __enter__(self) -> 'DocumentWriter':
        if self.state is WriterState.UNOPENED:
            self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
