"""Row-band scheduling shared by the pixel stages."""

import logging
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple

from ..config.settings import SETTINGS
from .errors import ProcessingCancelled

RowBand = Tuple[int, int]

logger = logging.getLogger(__name__)


def split_rows(height: int, chunk_size: int) -> List[RowBand]:
    """Partition ``range(height)`` into consecutive half-open row bands."""
    chunk_size = max(1, int(chunk_size))
    return [(start, min(start + chunk_size, height)) for start in range(0, height, chunk_size)]


def run_row_bands(height: int,
                  width: int,
                  worker: Callable[[int, int], None],
                  cancel_event: Optional[threading.Event] = None,
                  workers: Optional[int] = None,
                  chunk_size: Optional[int] = None) -> None:
    """Call ``worker(y0, y1)`` once per row band, in parallel when worthwhile.

    Each call must write only rows ``y0:y1`` of its output and only read
    shared input. NumPy releases the GIL during array math so thread
    workers run concurrently. ``cancel_event`` is checked before each band;
    once it is set the remaining bands are skipped and
    ``ProcessingCancelled`` is raised.
    """
    settings = SETTINGS["processing"]
    if chunk_size is None:
        chunk_size = settings.ROW_CHUNK_SIZE
    if workers is None:
        workers = settings.WORKERS or os.cpu_count() or 1

    bands = split_rows(height, chunk_size)
    max_workers = min(max(1, workers), len(bands))

    def _run_band(y0: int, y1: int) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise ProcessingCancelled(f"Cancelled before rows {y0}:{y1}")
        worker(y0, y1)

    # For small images, threading overhead dominates; keep it single-threaded.
    if width * height < settings.PARALLEL_MIN_PIXELS or max_workers == 1:
        for y0, y1 in bands:
            _run_band(y0, y1)
        return

    logger.debug(f"Dispatching {len(bands)} row bands to {max_workers} workers")
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures: List[Future] = [pool.submit(_run_band, y0, y1) for y0, y1 in bands]
        try:
            for fut in futures:
                fut.result()
        except BaseException:
            for fut in futures:
                fut.cancel()
            raise
