from pathlib import Path
from typing import BinaryIO, Callable, Iterable, Optional, Union

from loguru import logger

from .entries import GeneratedFile, SitemapEntry
from .errors import WriterStateError
from .writer import MAX_URLS_PER_FILE, DocumentWriter

UrlFor = Callable[[Path], str]


def posix_path(path: Path) -> str:
    return path.as_posix()


class IndexBuilder:
    """Writes the sitemap index that lists the generated sitemap files.

    It is a DocumentWriter in index mode, so a very long index rotates into parts exactly like a
    sitemap does.

    :param filename: Path prefix of the index file(s)
    :param url_for: Maps a sitemap file path to its public URL
    :param stream: A binary stream to write into when there is no filename
    :param include_self: Also list the index's own first part as the last entry
    """

    def __init__(self, filename: Union[str, Path, None] = None, url_for: UrlFor = posix_path, *,
                 stream: Optional[BinaryIO] = None, compress: bool = False,
                 max_per_file: int = MAX_URLS_PER_FILE, indent: int = 2, include_self: bool = False) -> None:
        self.url_for = url_for
        self.include_self = include_self
        self.writer = DocumentWriter(filename, stream=stream, compress=compress, index=True,
                                     max_per_file=max_per_file, indent=indent)

    def build(self, files: Iterable[GeneratedFile]) -> list[GeneratedFile]:
        """Writes one <sitemap> entry per file, in the given order.

        :param files: Closed sitemap parts. <lastmod> is written only when the part's time is known

        :raise WriterStateError: If a file has no path, e.g. a part written into a stream

        :return: The index part(s) written
        """
        files = list(files)
        if any(file.path is None for file in files):
            raise WriterStateError('Only sitemap parts written to files can be listed in an index')

        count = 0
        with self.writer as writer:
            for file in files:
                writer.add_entry(SitemapEntry(self.url_for(file.path), last_modified=file.modified))
                count += 1
            if self.include_self and writer.filename is not None:
                writer.add_entry(SitemapEntry(self.url_for(writer.part_path(0))))
                count += 1

        logger.info('Sitemap index lists {} file(s) in {} part(s)', count, len(self.writer.files))
        return self.writer.files
