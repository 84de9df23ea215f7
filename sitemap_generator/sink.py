import os
from gzip import GzipFile
from pathlib import Path
from typing import BinaryIO, Optional, Union

from .errors import WriterStateError


class OutputSink:
    """A byte destination for one sitemap part, optionally gzip-compressed while streaming.

    A path target is opened, owned and closed by the sink. A stream target (an open binary file,
    `io.BytesIO`...) is only flushed on close, the caller keeps owning it.
    """

    def __init__(self, target: Union[str, Path, BinaryIO], compress: bool = False) -> None:
        if isinstance(target, (str, Path)):
            self.path: Optional[Path] = Path(target)
            self._raw = self.path.open('wb')
            self._owned = True
        else:
            self.path = None
            self._raw = target
            self._owned = False

        self.compress = compress
        self._stream = GzipFile(fileobj=self._raw, mode='wb', filename='') if compress else self._raw
        self.closed = False

    def write(self, data: bytes) -> None:
        if self.closed:
            raise WriterStateError('Write to a closed sink')
        self._stream.write(data)

    def close(self) -> None:
        """Finishes the gzip member, flushes and releases the file.

        Once this returns, the bytes are on disk, so a modification time read afterwards describes
        the complete file. Calling it again does nothing.
        """
        if self.closed:
            return
        self.closed = True
        try:
            if self.compress:
                # GzipFile does not close a fileobj it was given, only writes the trailer
                self._stream.close()
            self._raw.flush()
            if self._owned:
                os.fsync(self._raw.fileno())
        finally:
            if self._owned:
                self._raw.close()

    def __enter__(self) -> 'OutputSink':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
