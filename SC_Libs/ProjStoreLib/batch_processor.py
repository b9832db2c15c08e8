"""
Batch colorization on a thread pool.

Each job colorizes one (group, generation) and optionally exports it. Jobs
run independently: a failure is recorded on that job's result and the rest
of the batch keeps going. ``cancel()`` stops jobs that have not started yet.
A running job stops at its next step boundary: it keeps a finished colorize
result but skips the export.
"""

import concurrent.futures
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional

from SC_Libs.constants import (
    STATUS_CANCELLED,
    STATUS_COLORIZING,
    STATUS_COMPLETED,
    STATUS_ERROR,
    STATUS_EXTRACTING_COLOR,
    STATUS_PENDING,
)
from SC_Libs.errors import ColorExtractionError
from SC_Libs.ImageEditingLib.raster_models import ColorizedImage
from SC_Libs.NodesLib.output_node import OutputNodeConfig
from SC_Libs.ProjStoreLib.color_source import ColorSource
from SC_Libs.ProjStoreLib.render_pipeline import SpoolRenderer

logger = logging.getLogger(__name__)


@dataclass
class BatchJob:
    """One colorization request.

    Either ``hex_color`` or ``image_bytes`` (for the color source) is needed.
    """
    group_id: str
    hex_color: Optional[str] = None
    image_bytes: Optional[bytes] = None
    source_image_id: str = ""
    generation_index: int = 0

    @property
    def key(self) -> str:
        return f"{self.group_id}#{self.generation_index}"


@dataclass
class BatchItemResult:
    job: BatchJob
    status: str = STATUS_PENDING
    image: Optional[ColorizedImage] = None
    extracted_hex: Optional[str] = None
    exports: Dict[str, Path] = field(default_factory=dict)
    error_message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_COMPLETED


ProgressCallback = Callable[[BatchItemResult], None]


def build_jobs(colors: Mapping[str, str], generation_count: int = 1) -> List[BatchJob]:
    """Create one job per group and generation from a group -> hex mapping."""
    return [
        BatchJob(group_id=group_id, hex_color=hex_color, source_image_id=group_id,
                 generation_index=generation_index)
        for group_id, hex_color in colors.items()
        for generation_index in range(generation_count)
    ]


class BatchProcessor:
    """
    Runs BatchJobs concurrently through a SpoolRenderer.

    Args:
        renderer: Renderer used for every job
        color_source: Resolves hex colors for jobs given only image bytes
        output_config: When set, each completed job is exported to disk
        max_workers: Thread pool size (default: renderer config)
        progress_callback: Called after each status change
    """

    def __init__(
        self,
        renderer: SpoolRenderer,
        color_source: Optional[ColorSource] = None,
        output_config: Optional[OutputNodeConfig] = None,
        max_workers: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.renderer = renderer
        self.color_source = color_source
        self.output_config = output_config
        self.max_workers = max_workers or renderer.config.max_workers
        self.progress_callback = progress_callback
        self._cancel_event = threading.Event()

    def cancel(self) -> None:
        """Skip pending jobs and the remaining steps of running ones."""
        logger.info("Batch cancellation requested")
        self._cancel_event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def _set_status(self, result: BatchItemResult, status: str) -> None:
        result.status = status
        if self.progress_callback is not None:
            self.progress_callback(result)

    def _resolve_hex(self, job: BatchJob) -> str:
        if job.hex_color:
            return job.hex_color
        if job.image_bytes is None or self.color_source is None:
            raise ColorExtractionError(
                "color extraction", f"job {job.key} has no hex color and no color source"
            )
        return self.color_source.extract_color(job.image_bytes).hex_color

    def _run_job(self, job: BatchJob) -> BatchItemResult:
        result = BatchItemResult(job=job)

        if self._cancel_event.is_set():
            self._set_status(result, STATUS_CANCELLED)
            return result

        try:
            if not job.hex_color:
                self._set_status(result, STATUS_EXTRACTING_COLOR)
            result.extracted_hex = self._resolve_hex(job)
            if self._cancel_event.is_set():
                self._set_status(result, STATUS_CANCELLED)
                return result

            self._set_status(result, STATUS_COLORIZING)
            result.image = self.renderer.colorize(
                result.extracted_hex,
                source_image_id=job.source_image_id,
                group_id=job.group_id,
                generation_index=job.generation_index,
            )
            if self.output_config is not None:
                if self._cancel_event.is_set():
                    self._set_status(result, STATUS_CANCELLED)
                    return result
                result.exports = self.renderer.export(result.image, self.output_config)
        except Exception as e:
            logger.exception(f"Batch job {job.key} failed")
            result.error_message = str(e)
            self._set_status(result, STATUS_ERROR)
            return result

        self._set_status(result, STATUS_COMPLETED)
        return result

    def process(self, jobs: List[BatchJob]) -> List[BatchItemResult]:
        """
        Run jobs and return their results in job order.

        Returns:
            One BatchItemResult per job, never raising for a single job failure
        """
        self._cancel_event.clear()
        if not jobs:
            return []

        self.renderer.assets.ensure_loaded()
        logger.info(f"Starting batch of {len(jobs)} job(s)")

        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [pool.submit(self._run_job, job) for job in jobs]
            results = [future.result() for future in futures]

        summary = self.summarize(results)
        logger.info(
            f"Batch finished: {summary[STATUS_COMPLETED]} completed, "
            f"{summary[STATUS_ERROR]} failed, {summary[STATUS_CANCELLED]} cancelled"
        )
        return results

    @staticmethod
    def summarize(results: List[BatchItemResult]) -> Dict[str, int]:
        """Count results per final status."""
        counts = {STATUS_COMPLETED: 0, STATUS_ERROR: 0, STATUS_CANCELLED: 0}
        for result in results:
            counts[result.status] = counts.get(result.status, 0) + 1
        return counts
