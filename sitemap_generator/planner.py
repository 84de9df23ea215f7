from dataclasses import dataclass
from math import ceil

from .errors import ConfigurationError


@dataclass(frozen=True)
class BatchRange:
    """A page of records to fetch: `limit` records from `offset`, written into file number `file_index`."""
    offset: int
    limit: int
    file_index: int

    @property
    def end(self) -> int:
        return self.offset + self.limit


def validate_limits(max_per_file: int, batch_size: int) -> None:
    if max_per_file <= 0:
        raise ConfigurationError(f'Max URLs per file must be positive, got {max_per_file}')
    if batch_size <= 0:
        raise ConfigurationError(f'Batch size must be positive, got {batch_size}')
    if batch_size > max_per_file:
        raise ConfigurationError(
            f'Batch size ({batch_size}) must not exceed max URLs per file ({max_per_file})')


def count_files(total_count: int, max_per_file: int) -> int:
    """Returns how many sitemap files `total_count` records need. No records, no files."""
    if total_count < 0:
        raise ConfigurationError(f'Record count must not be negative, got {total_count}')
    return ceil(total_count / max_per_file) if total_count else 0


def plan_batches(total_count: int, max_per_file: int, batch_size: int) -> list[BatchRange]:
    """Partitions `[0, total_count)` into fetch batches grouped by output file.

    The records are spread over the files as evenly as possible: every file gets
    `total_count // files` records and the first `total_count % files` files get one more.
    Each file's share is then cut into batches of `batch_size`, the last batch of a file being
    shorter when the share is not a multiple of it. So no batch crosses a file boundary, no file
    exceeds `max_per_file` and the ranges neither overlap nor leave gaps.

    :param total_count: Number of records in the source
    :param max_per_file: URL limit of a single sitemap file
    :param batch_size: Max records per fetch, not greater than `max_per_file`

    :raise ConfigurationError: If the limits are inconsistent

    :return: Batch ranges ordered by offset
    """
    validate_limits(max_per_file, batch_size)
    num_files = count_files(total_count, max_per_file)
    if not num_files:
        return []

    base, remainder = divmod(total_count, num_files)
    batches = []
    offset = 0
    for file_index in range(num_files):
        file_end = offset + base + (1 if file_index < remainder else 0)
        while offset < file_end:
            limit = min(batch_size, file_end - offset)
            batches.append(BatchRange(offset, limit, file_index))
            offset += limit

    return batches
