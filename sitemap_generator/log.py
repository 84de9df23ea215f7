import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger


def configure_logging(level: str = 'INFO', log_dir: Optional[Union[str, Path]] = None) -> None:
    """Replaces loguru's default handler: stderr at `level`, plus a rotating file when `log_dir` is given."""
    logger.remove()
    logger.add(sys.stderr, level=level)
    if log_dir is not None:
        logger.add(
            Path(log_dir) / 'sitemap_{time}.log',
            rotation='256 MB',
            retention='10 days',
            compression='zip',
            encoding='utf-8',
            level='DEBUG',
        )
