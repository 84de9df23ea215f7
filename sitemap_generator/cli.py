from argparse import ArgumentParser
from pathlib import Path
from pprint import pprint
from re import search
from sys import exit
from time import perf_counter

from loguru import logger
from lxml import etree

from .config import DEFAULT_BATCH_SIZE, PingSettings, SitemapConfig
from .entries import ChangeFrequency
from .errors import SitemapError
from .generator import SitemapGenerator, SourceSpec
from .log import configure_logging
from .records import RecordAdapter, XmlRecordSource
from .writer import MAX_URLS_PER_FILE


def run() -> None:
    """Controls the general workflow. Also measures the script execution time and prints a report (if requested).
    The workflow includes:
      1. Creation a parser with necessary arguments;
      2. Parsing command-line arguments;
      3. Generation of the sitemap files and the index with a report;
      4. Printing the report.

    :return: None
    """
    report_info = {
        'time spent (sec)': perf_counter(),
    }

    parser = create_parser()
    namespace = parser.parse_args()
    configure_logging(namespace.log_level)
    report_info, print_report = handle(vars(namespace), report_info)
    report_info['time spent (sec)'] = round(perf_counter() - report_info['time spent (sec)'], 6)

    if print_report:
        pprint(report_info, sort_dicts=False, width=10)


def create_parser() -> ArgumentParser:
    """Creates a parser instance and adds necessary arguments to it.
    Some of these arguments undergo additional value validation by calling validation functions when parsing.

    :return: A parser instance
    """
    parser = ArgumentParser(prog='sitemap-gen',
                            description='Generates sitemap files and a sitemap index from URLs found in an XML file')
    parser.add_argument('-f', '--file', type=Path, required=True,
                        help='Path to an XML-file (or a gz-archive with it)')
    parser.add_argument('-t', '--target tag(s)', nargs='+', required=True,
                        help='Tag(s) to find and include in the sitemap (separated by space), as XPath expressions')
    parser.add_argument('-o', '--output dir', type=Path, default='./sitemap',
                        help='Path to the directory where the sitemap will be placed')
    parser.add_argument('-a', '--addresses per file', type=addresses_num_validator, default=MAX_URLS_PER_FILE,
                        help='Max addresses number for each sitemap file (up to 50k)')
    parser.add_argument('-b', '--batch size', type=addresses_num_validator, default=DEFAULT_BATCH_SIZE,
                        help='Addresses handled at once, not more than the addresses per file')
    parser.add_argument('-u', '--url priority', type=priority_range_validator, default=0.3,
                        help='URLs priority (from 0 to 1.0)')
    parser.add_argument('-c', '--change frequency', choices=[f.value for f in ChangeFrequency], default=None,
                        help='Change frequency written for every URL')
    parser.add_argument('-p', '--filename prefix', type=filename_prefix_validator, default='sitemap',
                        help='Prefix to use in output filenames, eg. "prefix.xml", "prefix_1.xml"...')
    parser.add_argument('-i', '--index name', type=filename_prefix_validator, default='sitemap_index',
                        help='File name (without extension) of the sitemap index')
    parser.add_argument('-z', '--zip', action='store_true', help='Write sitemap archive files (.gz)')
    parser.add_argument('-r', '--report', action='store_true', help='Print a short report')
    parser.add_argument('--base-url', dest='base_url', required=True,
                        help='URL the output directory is served at, used for the index entries')
    parser.add_argument('--ping-google', dest='ping_google', action='store_true', help='Notify Google')
    parser.add_argument('--ping-msn', dest='ping_msn', action='store_true', help='Notify MSN')
    parser.add_argument('--ping-ask', dest='ping_ask', action='store_true', help='Notify Ask')
    parser.add_argument('--log-level', dest='log_level', default='WARNING',
                        choices=['TRACE', 'DEBUG', 'INFO', 'SUCCESS', 'WARNING', 'ERROR', 'CRITICAL'])

    return parser


def addresses_num_validator(digits: str) -> int:
    """Check if the value is in an allowable range.

    :param digits: A string with digits

    :raise ValueError: If the value is not in an allowable range

    :return: A validated integer value
    """
    digits = int(digits)
    if not 0 < digits <= MAX_URLS_PER_FILE:
        raise ValueError
    return digits


def priority_range_validator(priority: str) -> float:
    """Check if the value is in an allowable range.

        :param priority: A string with digits

        :raise ValueError: If the value is not in an allowable range

        :return: A validated float value
    """
    priority = float(priority)
    if not 0 <= priority <= 1:
        raise ValueError
    return priority


def filename_prefix_validator(prefix: str) -> str:
    """Checks if string contains any of the unallowable symbols.
    It should prevent the creation of a file with a name that is not valid for a server.

    :param prefix: A string to check

    :raise ValueError: If any of unallowable symbols is in the string

    :return: The same string
    """
    if not prefix or search(r'[#<>$+%!`&*‘|{}?"=/:\\ @[\]]', prefix):
        raise ValueError
    return prefix


def handle(options: dict, report: dict) -> tuple[dict, bool]:
    """Controls the working logic of the script.
    It reads the input, registers it as a record source and runs the generator.

    :param options: Parsed arguments from a command-line
    :param report: A dict for collecting report data

    :return: (Report data dict, Boolean whether to print the report)
    """
    input_xml_file: Path = options['file'].resolve()
    output_dir: Path = options['output dir'].resolve()
    tags: list[str] = options['target tag(s)']

    try:
        config = SitemapConfig(
            base_url=options['base_url'],
            document_root=output_dir,
            path='',
            max_per_file=options['addresses per file'],
            batch_size=min(options['batch size'], options['addresses per file']),
            compress=options['zip'],
            index_name=options['index name'],
            ping=PingSettings(google=options['ping_google'], msn=options['ping_msn'], ask=options['ping_ask']),
        )
        source = XmlRecordSource(input_xml_file, tags)
    except IOError:
        print(f'File "{input_xml_file}" does not exist')
        exit(1)
    except etree.XMLSyntaxError:
        print(f'File "{input_xml_file}" contains invalid elements')
        exit(1)
    except SitemapError as e:
        print(e)
        exit(1)

    report['sitemap path'] = str(output_dir)
    report['tags handled'] = source.counts_by_tag()

    generator = SitemapGenerator(config).add(SourceSpec(
        source=source,
        adapter=RecordAdapter.from_fields(identifier='loc'),
        prefix=options['filename prefix'],
        change_frequency=options['change frequency'],
        priority=options['url priority'],
    ))
    try:
        result = generator.generate()
    except (SitemapError, OSError) as e:
        logger.error('Generation failed: {}', e)
        print(f'Sitemap generation failed: {e}')
        exit(1)

    report['sitemap files created'] = len(result.files)
    report['sitemap-index created'] = len(result.index_files)
    report['sitemap-index url'] = result.index_url
    if result.notifications:
        report['search engines notified'] = {ping.engine: ping.ok for ping in result.notifications}

    return report, options['report']
