"""
Command line interface for CherryPick.
"""

import asyncio
import os
import sys
import time
from pathlib import Path
from typing import List, Optional

import click
from dotenv import load_dotenv

from ..core import split_urls
from ..infrastructure.error_handler import ParseError
from ..models import Credentials, FetchConfig, FetchRequest, FetchResult, FetchStatus, FetchStrategy
from .api import CherryPicker


def _build_config(
    dest: Optional[Path],
    concurrency: Optional[int],
    backend: Optional[str],
    timeout: Optional[float]
) -> FetchConfig:
    try:
        return FetchConfig.from_env(
            os.environ,
            download_dir=dest,
            max_concurrent_downloads=concurrency,
            strategy=FetchStrategy(backend) if backend else None,
            timeout=timeout
        )
    except ValueError as e:
        raise click.UsageError(f"Invalid configuration: {e}")


def _report(result: FetchResult) -> None:
    name = result.request.display_name
    count = len(result.downloaded_files)

    if result.status is FetchStatus.COMPLETED:
        click.echo(f"{name}: {count} file(s) downloaded")
    elif result.status is FetchStatus.PARTIAL:
        click.echo(
            f"{name}: {count} file(s) downloaded, "
            f"{len(result.failed_files)} failed:",
            err=True
        )
        for path, cause in sorted(result.failed_files.items()):
            click.echo(f"  {path}: {cause}", err=True)
    else:
        click.echo(f"{name}: {result.status.value}: {result.error_message}", err=True)


async def _fetch_all(
    picker: CherryPicker,
    requests: List[FetchRequest],
    parallel: bool
) -> List[FetchResult]:
    async with picker:
        return await picker.fetch_many(requests, parallel=parallel)


@click.command()
@click.argument("urls")
@click.option(
    "--dest", "-d",
    type=click.Path(file_okay=False, path_type=Path),
    help="Destination directory (default: $CHERRYPICK_DOWNLOAD_DIR or ./cherrypicked)"
)
@click.option(
    "--concurrency", "-c",
    type=click.IntRange(min=1),
    help="Maximum concurrent file downloads (default: 50)"
)
@click.option(
    "--backend", "-b",
    type=click.Choice([s.value for s in FetchStrategy]),
    help="Use the contents API or a sparse git clone"
)
@click.option(
    "--timeout", "-t",
    type=click.FloatRange(min=0, min_open=True),
    help="Overall deadline per URL, in seconds"
)
@click.option("--parallel", is_flag=True, help="Fetch all URLs at the same time")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(
    urls: str,
    dest: Optional[Path],
    concurrency: Optional[int],
    backend: Optional[str],
    timeout: Optional[float],
    parallel: bool,
    verbose: bool
) -> None:
    """
    Download directories or files from GitHub.

    URLS is a comma-separated list of repository, /tree/ or /blob/ URLs.
    """
    load_dotenv()
    start_time = time.monotonic()

    config = _build_config(dest, concurrency, backend, timeout)
    try:
        config.download_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise click.ClickException(f"Failed to create destination folder: {e}")

    url_list = split_urls(urls)
    if not url_list:
        raise click.UsageError("Please provide GitHub URLs as arguments")

    picker = CherryPicker(
        config=config,
        credentials=Credentials.from_env(os.environ),
        verbose=verbose
    )

    try:
        requests = [picker.build_request(url) for url in url_list]
    except ParseError as e:
        raise click.ClickException(str(e))

    for request in requests:
        click.echo(f"Getting {request.display_name}")

    try:
        results = asyncio.run(_fetch_all(picker, requests, parallel))
    except KeyboardInterrupt:
        click.echo("Cancelled", err=True)
        sys.exit(130)

    for result in results:
        _report(result)

    click.echo(f"Time taken to download: {time.monotonic() - start_time:.2f}s")

    if not all(result.is_successful for result in results):
        sys.exit(1)


__all__ = [
    "main",
]
