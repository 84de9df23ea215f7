from dataclasses import dataclass
from datetime import datetime
from itertools import chain, zip_longest
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Protocol, Sequence, runtime_checkable

from lxml import etree

from .entries import Timestamp, VideoExtension
from .errors import ConfigurationError

# Newer information wins: update times are tried before creation times
TIMESTAMP_FIELDS = ('updated_at', 'updated_on', 'updated', 'created_at', 'created_on', 'created')

Accessor = Callable[[Any], Any]


@runtime_checkable
class RecordSource(Protocol):
    """Where the records of one sitemap come from: a table, an API, a file..."""

    def count(self) -> int:
        ...

    def fetch_page(self, offset: int, limit: int) -> Sequence[Any]:
        ...


def field_getter(name: str) -> Accessor:
    """Returns an accessor reading `name` as a key of a mapping or an attribute of an object."""
    def get(record):
        if isinstance(record, dict):
            return record.get(name)
        return getattr(record, name, None)
    return get


def first_present(getters: Sequence[Accessor]) -> Accessor:
    def get(record):
        for getter in getters:
            value = getter(record)
            if value is not None and value != '':
                return value
        return None
    return get


@dataclass(frozen=True)
class RecordAdapter:
    """Explicit accessors turning one kind of record into sitemap fields.

    Only `identifier` is required. A missing accessor, or one returning None, leaves the field out.
    """
    identifier: Accessor
    timestamp: Optional[Callable[[Any], Optional[Timestamp]]] = None
    change_frequency: Optional[Accessor] = None
    priority: Optional[Callable[[Any], Optional[float]]] = None
    video: Optional[Callable[[Any], Optional[VideoExtension]]] = None

    def __post_init__(self):
        if not callable(self.identifier):
            raise ConfigurationError('Record adapter needs a callable identifier accessor')

    @classmethod
    def from_fields(cls, identifier: str = 'id', timestamps: Iterable[str] = TIMESTAMP_FIELDS,
                    **accessors) -> 'RecordAdapter':
        """Builds an adapter reading plain attributes (or dict keys) by name.

        :param identifier: Field holding the URL path segment (or the whole URL)
        :param timestamps: Fields tried in order for <lastmod>, the first non-empty one wins
        :param accessors: Other accessors passed through as they are

        :return: A RecordAdapter
        """
        return cls(identifier=field_getter(identifier),
                   timestamp=first_present([field_getter(name) for name in timestamps]),
                   **accessors)


class SequenceSource:
    """Records already in memory, e.g. a list of dicts or a query result."""

    def __init__(self, records: Sequence[Any]) -> None:
        self.records = records

    def count(self) -> int:
        return len(self.records)

    def fetch_page(self, offset: int, limit: int) -> Sequence[Any]:
        return self.records[offset:offset + limit]


@dataclass(frozen=True)
class XmlRecord:
    loc: str
    xpath: str
    updated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class XmlRecordSource:
    """Records found in an XML file (or a gz-archive with it) by XPath expressions.

    The text of each matching element is the URL. Elements without text are skipped. Optional
    `lastmod`/`updated_at` and `created_at` attributes (ISO 8601) become timestamps.

    :param path: Path to the XML file
    :param xpath_expressions: Tag(s) to find, e.g. `//offer/url`

    :raise OSError: If the file cannot be read
    :raise etree.XMLSyntaxError: If the file is not well-formed
    :raise ConfigurationError: If an expression is not valid XPath
    """

    def __init__(self, path: Path, xpath_expressions: Sequence[str]) -> None:
        self.path = Path(path)
        self.xpath_expressions = list(xpath_expressions)
        tree = etree.parse(str(self.path))

        iterators = []
        for x_path in self.xpath_expressions:
            try:
                iterators.append(zip_longest(tree.iterfind(x_path), [], fillvalue=x_path))
            except SyntaxError as e:
                raise ConfigurationError(f'Wrong syntax of the tag "{x_path}": {e}') from e

        self._records = [self._to_record(element, x_path) for element, x_path in chain(*iterators)
                         if element.text and element.text.strip()]

    def count(self) -> int:
        return len(self._records)

    def fetch_page(self, offset: int, limit: int) -> list[XmlRecord]:
        return self._records[offset:offset + limit]

    def counts_by_tag(self) -> dict[str, int]:
        counts = dict.fromkeys(self.xpath_expressions, 0)
        for record in self._records:
            counts[record.xpath] += 1
        return counts

    @staticmethod
    def _to_record(element, x_path: str) -> XmlRecord:
        updated = element.get('lastmod') or element.get('updated_at')
        created = element.get('created_at')
        return XmlRecord(
            loc=element.text.strip(),
            xpath=x_path,
            updated_at=_parse_time(updated),
            created_at=_parse_time(created),
        )


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return None
