"""Download EuPathDB release files (GFF, gene reports) with retry and streaming."""

from pathlib import Path

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.get_logger()


@retry(
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=4, max=60),
    retry=retry_if_exception_type(
        (httpx.HTTPStatusError, httpx.ConnectError, httpx.TimeoutException)
    ),
    reraise=True,
)
def download_source(
    url: str,
    output_path: Path,
    force: bool = False,
) -> Path:
    """Download a source file to disk, skipping the download if it exists.

    The file is streamed to a temporary sibling and renamed into place once
    complete, so an interrupted download never leaves a truncated file behind.
    Compressed files are stored as-is; the parsers read gzip directly.

    Args:
        url: File URL
        output_path: Destination path
        force: If True, re-download even if the file exists

    Returns:
        Path to the downloaded file

    Raises:
        httpx.HTTPStatusError: On HTTP errors (after retries)
        httpx.ConnectError: On connection errors (after retries)
        httpx.TimeoutException: On timeout (after retries)
    """
    output_path = Path(output_path)

    if output_path.exists() and not force:
        logger.info(
            "source_file_exists",
            path=str(output_path),
            size_mb=round(output_path.stat().st_size / 1024 / 1024, 2),
        )
        return output_path

    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = output_path.with_suffix(output_path.suffix + ".tmp")

    logger.info("source_download_start", url=url)

    with httpx.stream("GET", url, timeout=120.0, follow_redirects=True) as response:
        response.raise_for_status()
        with open(temp_path, "wb") as f:
            for chunk in response.iter_bytes(chunk_size=8192):
                f.write(chunk)

    temp_path.rename(output_path)

    logger.info(
        "source_download_complete",
        path=str(output_path),
        size_mb=round(output_path.stat().st_size / 1024 / 1024, 2),
    )

    return output_path
