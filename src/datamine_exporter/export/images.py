"""Downloads images referenced by ``=IMAGE()`` cells."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx
from tqdm import tqdm

from ..sheets.models import Spreadsheet
from .naming import unique_image_names, unique_sheet_names
from .writer import write_file_atomic

logger = logging.getLogger(__name__)

IMAGES_DIR = "images"


@dataclass
class ImageJob:
    """An image to download and where it goes."""
    sheet_title: str
    url: str
    path: Path


@dataclass
class ImageResult:
    """Outcome of a single image download."""
    sheet_title: str
    url: str
    path: Path
    ok: bool
    error: Optional[str] = None


def plan_image_downloads(spreadsheet: Spreadsheet, out_dir: Path) -> list[ImageJob]:
    """List the images of every sheet with their target paths.

    Images go to ``<out_dir>/images/<sheet name>/``, using the same sheet
    names as the exported JSON files.
    """
    jobs = []
    names = unique_sheet_names([sheet.title for sheet in spreadsheet.sheets])
    for sheet, sheet_name in zip(spreadsheet.sheets, names):
        urls = [url for url in sheet.image_urls() if url.lower().startswith(("http://", "https://"))]
        if not urls:
            continue
        sheet_dir = out_dir / IMAGES_DIR / sheet_name
        for url, filename in unique_image_names(urls).items():
            jobs.append(ImageJob(sheet_title=sheet.title, url=url, path=sheet_dir / filename))
    return jobs


class ImageDownloader:
    """Downloads images concurrently, collecting failures instead of raising."""

    def __init__(
        self,
        concurrency: int = 8,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        show_progress: bool = True,
    ):
        self.concurrency = concurrency
        self.timeout = timeout
        self._transport = transport
        self.show_progress = show_progress

    async def download_all(self, jobs: list[ImageJob]) -> list[ImageResult]:
        """Download every job. Results come back in job order."""
        if not jobs:
            return []

        semaphore = asyncio.Semaphore(self.concurrency)
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            with tqdm(total=len(jobs), unit="img", desc="Downloading images", disable=not self.show_progress) as progress:

                async def run(job: ImageJob) -> ImageResult:
                    async with semaphore:
                        result = await self._download(client, job)
                    progress.update(1)
                    return result

                return await asyncio.gather(*(run(job) for job in jobs))

    async def _download(self, client: httpx.AsyncClient, job: ImageJob) -> ImageResult:
        try:
            response = await client.get(job.url)
            response.raise_for_status()
            await asyncio.to_thread(self._save, job.path, response.content)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError, OSError) as e:
            if isinstance(e, httpx.HTTPStatusError):
                error = f"HTTP {e.response.status_code}"
            else:
                error = f"{type(e).__name__}: {e}"
            logger.warning(f"Failed to download image {job.url} from sheet '{job.sheet_title}': {error}")
            return ImageResult(job.sheet_title, job.url, job.path, ok=False, error=error)

        logger.debug(f"Saved {job.url} to {job.path}")
        return ImageResult(job.sheet_title, job.url, job.path, ok=True)

    @staticmethod
    def _save(path: Path, content: bytes):
        path.parent.mkdir(parents=True, exist_ok=True)
        write_file_atomic(path, content)

    def run(self, jobs: list[ImageJob]) -> list[ImageResult]:
        return asyncio.run(self.download_all(jobs))


def export_images(
    spreadsheet: Spreadsheet,
    out_dir: Path,
    concurrency: int = 8,
    timeout: float = 60.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    show_progress: bool = True,
) -> list[ImageResult]:
    """Download all images referenced in the spreadsheet.

    A failed download is logged and reported in the results, the rest
    continue.
    """
    jobs = plan_image_downloads(spreadsheet, out_dir)
    logger.info(f"Found {len(jobs)} images to download")

    downloader = ImageDownloader(
        concurrency=concurrency,
        timeout=timeout,
        transport=transport,
        show_progress=show_progress,
    )
    results = downloader.run(jobs)

    failed = [r for r in results if not r.ok]
    logger.info(f"Downloaded {len(results) - len(failed)} of {len(results)} images")
    return results
