import gzip
from io import BytesIO
from pathlib import Path

import pytest

from sitemap_generator import OutputSink, WriterStateError


def test_plain_file(tmp_path: Path):
    path = tmp_path / 'out.xml'
    sink = OutputSink(path)
    sink.write(b'<a/>')
    sink.close()

    assert path.read_bytes() == b'<a/>'
    assert sink.closed


def test_gzip_file_is_complete_after_close(tmp_path: Path):
    path = tmp_path / 'out.xml.gz'
    with OutputSink(path, compress=True) as sink:
        sink.write(b'<a>')
        sink.write(b'</a>')

    with gzip.open(path, 'rb') as f:
        assert f.read() == b'<a></a>'


def test_stream_is_not_closed():
    buffer = BytesIO()
    sink = OutputSink(buffer)
    sink.write(b'data')
    sink.close()

    assert not buffer.closed
    assert buffer.getvalue() == b'data'
    assert sink.path is None


def test_close_is_idempotent_and_write_after_close_fails(tmp_path: Path):
    sink = OutputSink(tmp_path / 'out.xml', compress=True)
    sink.close()
    sink.close()

    with pytest.raises(WriterStateError):
        sink.write(b'late')


def test_missing_directory_raises_os_error(tmp_path: Path):
    with pytest.raises(OSError):
        OutputSink(tmp_path / 'missing' / 'out.xml')
