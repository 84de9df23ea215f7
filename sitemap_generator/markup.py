from typing import Optional
from xml.sax.saxutils import escape

from .errors import MarkupError, WriterStateError
from .sink import OutputSink

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
ATTR_ENTITIES = {'"': '&quot;', '\n': '&#10;', '\t': '&#9;'}


class XmlMarkup:
    """Streams XML markup into a sink, keeping a stack of the tags that are still open.

    Tags are written as soon as they are opened, nothing is buffered, so a document of any size
    costs only the stack depth in memory.
    """

    def __init__(self, sink: Optional[OutputSink] = None, indent: int = 2) -> None:
        self.sink = sink
        self.indent = indent
        self._open_tags: list[str] = []

    @property
    def open_tags(self) -> tuple[str, ...]:
        return tuple(self._open_tags)

    @property
    def level(self) -> int:
        return len(self._open_tags)

    def declaration(self) -> None:
        self._line(XML_DECLARATION)

    def open_tag(self, name: str, attrs: Optional[dict] = None) -> None:
        self._line(f'<{name}{_attributes(attrs)}>')
        self._open_tags.append(name)

    def close_tag(self, name: str) -> None:
        if not self._open_tags or self._open_tags[-1] != name:
            current = self._open_tags[-1] if self._open_tags else None
            raise MarkupError(f'Cannot close <{name}>, the innermost open tag is <{current}>')
        self._open_tags.pop()
        self._line(f'</{name}>')

    def text_tag(self, name: str, text, attrs: Optional[dict] = None) -> None:
        """Writes a complete element with escaped text content on a single line."""
        self._line(f'<{name}{_attributes(attrs)}>{escape(str(text))}</{name}>')

    def close_all(self) -> None:
        """Closes every open tag, innermost first."""
        while self._open_tags:
            self.close_tag(self._open_tags[-1])

    def _line(self, markup: str) -> None:
        if self.sink is None:
            raise WriterStateError('Nothing to write to, open a sink first')
        if self.indent:
            markup = ' ' * (self.indent * self.level) + markup + '\n'
        self.sink.write(markup.encode('utf-8'))


def _attributes(attrs: Optional[dict]) -> str:
    if not attrs:
        return ''
    return ''.join(f' {name}="{escape(str(value), ATTR_ENTITIES)}"' for name, value in attrs.items())
