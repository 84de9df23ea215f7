from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

import pytest

from sitemap_generator import (
    ChangeFrequency, ConfigurationError, RecordAdapter, RecordError, SitemapGenerator, SourceSpec,
    VideoExtension,
)
from sitemap_generator.notify import PingResult

from .conftest import SM, Article, RecordingSource, locations, parse_xml

UPDATED = datetime(2024, 2, 1, tzinfo=timezone.utc)


def articles(count: int) -> RecordingSource:
    return RecordingSource(Article(n, updated_at=UPDATED if n % 2 else None) for n in range(1, count + 1))


def spec(source, prefix: str = 'sitemap_articles', **kwargs) -> SourceSpec:
    return SourceSpec(source=source, adapter=RecordAdapter.from_fields(), prefix=prefix, path='articles', **kwargs)


class FakeNotifier:
    def __init__(self, error: Exception = None) -> None:
        self.error = error
        self.urls = []

    def notify(self, url):
        self.urls.append(url)
        if self.error:
            raise self.error
        return [PingResult('google', url, ok=True, status=200)]


class TestGenerate:
    def test_single_source(self, config, tmp_path: Path):
        source = articles(7)
        result = SitemapGenerator(config).add(spec(source)).generate()

        assert [file.path for file in result.files] == [tmp_path / 'sitemaps' / 'sitemap_articles.xml']
        assert locations(result.files[0].path) == [f'https://example.com/articles/{n}' for n in range(1, 8)]
        assert source.calls == [(0, 4), (4, 3)]
        assert result.url_count == 7

        root = parse_xml(result.files[0].path)
        first, second = root[0], root[1]
        assert first.findtext(f'{SM}lastmod') == '2024-02-01T00:00:00+00:00'
        assert first.findtext(f'{SM}changefreq') == 'weekly'
        assert second.find(f'{SM}lastmod') is None

    def test_large_source_is_split_following_the_plan(self, config, tmp_path: Path):
        source = articles(25)
        result = SitemapGenerator(config).add(spec(source)).generate()

        assert [file.path.name for file in result.files] == [
            'sitemap_articles.xml', 'sitemap_articles_1.xml', 'sitemap_articles_2.xml',
        ]
        # 25 records in 3 files of at most 10: 9 + 8 + 8
        assert [file.url_count for file in result.files] == [9, 8, 8]
        offsets = [offset for offset, _ in source.calls]
        assert offsets == sorted(offsets)
        written = [loc for file in result.files for loc in locations(file.path)]
        assert written == [f'https://example.com/articles/{n}' for n in range(1, 26)]

    def test_index_lists_all_sources_in_order(self, config, tmp_path: Path):
        generator = SitemapGenerator(config)
        generator.add(spec(articles(12))).add(spec(articles(3), prefix='sitemap_users'))
        result = generator.generate()

        assert result.index_url == 'https://example.com/sitemaps/sitemap_index.xml'
        assert locations(result.index_files[0].path) == [
            'https://example.com/sitemaps/sitemap_articles.xml',
            'https://example.com/sitemaps/sitemap_articles_1.xml',
            'https://example.com/sitemaps/sitemap_users.xml',
        ]
        for sitemap in parse_xml(result.index_files[0].path):
            assert sitemap.findtext(f'{SM}lastmod') is not None

    def test_empty_source_writes_no_file(self, config):
        result = SitemapGenerator(config).add(spec(articles(0))).generate()

        assert result.files == []
        assert len(parse_xml(result.index_files[0].path)) == 0

    def test_compressed_output(self, config, tmp_path: Path):
        config = replace(config, compress=True)
        result = SitemapGenerator(config).add(spec(articles(3))).generate()

        assert result.files[0].path.name == 'sitemap_articles.xml.gz'
        assert result.index_url.endswith('/sitemap_index.xml.gz')
        assert len(locations(result.files[0].path)) == 3

    def test_record_overrides(self, config):
        adapter = RecordAdapter.from_fields(
            change_frequency=lambda record: 'daily' if record.id == 1 else None,
            priority=lambda record: 0.8,
        )
        source_spec = SourceSpec(articles(2), adapter, 'sitemap_articles', path='articles',
                                 change_frequency=ChangeFrequency.MONTHLY, priority=0.1)
        result = SitemapGenerator(config).add(source_spec).generate()

        first, second = parse_xml(result.files[0].path)
        assert first.findtext(f'{SM}changefreq') == 'daily'
        assert second.findtext(f'{SM}changefreq') == 'monthly'
        assert second.findtext(f'{SM}priority') == '0.8'

    def test_identifiers_as_full_urls(self, config):
        source = RecordingSource([{'loc': 'https://other.example.com/x'}])
        source_spec = SourceSpec(source, RecordAdapter.from_fields(identifier='loc'), 'sitemap_links')
        result = SitemapGenerator(config).add(source_spec).generate()

        assert locations(result.files[0].path) == ['https://other.example.com/x']

    def test_video_source(self, config):
        adapter = RecordAdapter.from_fields(video=lambda record: VideoExtension(title=f'Video {record.id}'))
        source_spec = SourceSpec(articles(1), adapter, 'sitemap_videos', path='videos', video=True)
        result = SitemapGenerator(config).add(source_spec).generate()

        root = parse_xml(result.files[0].path)
        assert root.findtext('.//{http://www.google.com/schemas/sitemap-video/1.1}title') == 'Video 1'

    def test_clean_removes_output(self, config):
        generator = SitemapGenerator(config).add(spec(articles(1)))
        generator.generate()
        generator.clean()

        assert not config.output_dir.exists()


class TestErrors:
    def test_missing_identifier_aborts_and_closes_the_file(self, config):
        source = RecordingSource([Article(1), Article(2), Article(None), Article(4)])
        generator = SitemapGenerator(config).add(spec(source))

        with pytest.raises(RecordError):
            generator.generate()

        # the open part was closed properly and holds what was written before the error
        assert locations(config.output_dir / 'sitemap_articles.xml') == [
            'https://example.com/articles/1', 'https://example.com/articles/2',
        ]
        assert not (config.output_dir / 'sitemap_index.xml').exists()

    def test_batch_size_above_max_per_file(self, config):
        with pytest.raises(ConfigurationError):
            SitemapGenerator(config).add(spec(articles(1), batch_size=20))

    def test_source_without_fetch_page(self, config):
        class CountOnly:
            def count(self):
                return 1

        with pytest.raises(ConfigurationError):
            SitemapGenerator(config).add(SourceSpec(CountOnly(), RecordAdapter.from_fields(), 'sitemap_x'))

    def test_source_without_adapter(self, config):
        with pytest.raises(ConfigurationError):
            SitemapGenerator(config).add(SourceSpec(articles(1), None, 'sitemap_x'))

    def test_duplicate_prefix(self, config):
        generator = SitemapGenerator(config).add(spec(articles(1)))
        with pytest.raises(ConfigurationError):
            generator.add(spec(articles(1)))

    def test_configuration_errors_write_nothing(self, config):
        with pytest.raises(ConfigurationError):
            SitemapGenerator(config).add(spec(articles(1), max_per_file=60_000))
        assert not config.output_dir.exists()


class TestNotification:
    def test_notifier_gets_index_url(self, config):
        notifier = FakeNotifier()
        result = SitemapGenerator(config, notifier=notifier).add(spec(articles(1))).generate()

        assert notifier.urls == ['https://example.com/sitemaps/sitemap_index.xml']
        assert result.notifications[0].ok

    def test_failing_notifier_keeps_the_result(self, config):
        notifier = FakeNotifier(error=RuntimeError('network down'))
        result = SitemapGenerator(config, notifier=notifier).add(spec(articles(2))).generate()

        assert result.url_count == 2
        assert result.index_files[0].path.exists()
        assert not result.notifications[0].ok
        assert 'network down' in result.notifications[0].error

    def test_no_pings_when_disabled(self, config):
        result = SitemapGenerator(config).add(spec(articles(1))).generate()
        assert result.notifications == []
