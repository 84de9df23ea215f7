from .config import PingSettings, SitemapConfig
from .entries import ChangeFrequency, GeneratedFile, SitemapEntry, VideoExtension, format_timestamp
from .errors import ConfigurationError, MarkupError, RecordError, SitemapError, WriterStateError
from .generator import GenerationResult, SitemapGenerator, SourceSpec
from .index import IndexBuilder
from .planner import BatchRange, count_files, plan_batches
from .records import RecordAdapter, RecordSource, SequenceSource, XmlRecordSource
from .sink import OutputSink
from .writer import DocumentWriter

__version__ = '0.1.0'
