"""
Visual Analysis Client
======================

Sends rendered slide images to an HTTP analysis service and delivers the
parsed reply (content regions and column layout) into the AnalysisCache.

Requests run on a small thread pool so the batch scheduler never blocks on
the network; it only waits a bounded time on the cache. A failed request
is logged and delivers nothing, which the scheduler treats as a timeout.

Reply format::

    {
      "regions": [{"x": .., "y": .., "width": .., "height": .., "type": "image", "confidence": 0.9}],
      "layout": {"columnCount": 2, "columns": [{"x": 0, "width": 200}, {"x": 200, "width": 200}]}
    }

Coordinates are pixels of the submitted image.
"""

import base64
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from hosts.base import ExportedImage
from layout.models import AnalysisResult
from shared.analysis_cache import AnalysisCache
from shared.config_manager import AnalysisSettings
from shared.processing_exceptions import AnalysisServiceError, log_structured_error

logger = logging.getLogger(__name__)


class ConnectionPool:
    """Manages HTTP connection pooling for the analysis service."""

    def __init__(self, pool_maxsize: int = 4, retry_attempts: int = 2):
        self.session = requests.Session()

        # Configure retry strategy for the session
        retry_strategy = Retry(
            total=retry_attempts,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["POST"],
            backoff_factor=0.5,
            respect_retry_after_header=True
        )

        adapter = HTTPAdapter(
            pool_connections=1,
            pool_maxsize=pool_maxsize,
            max_retries=retry_strategy
        )

        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        self.session.headers.update({
            'User-Agent': 'slidetext-analysis-client/1.0',
            'Accept': 'application/json',
            'Content-Type': 'application/json'
        })

    def post(self, url: str, timeout: float = 10.0, **kwargs) -> requests.Response:
        """Make a POST request with connection pooling."""
        return self.session.post(url, timeout=timeout, **kwargs)

    def close(self):
        """Close the connection pool."""
        self.session.close()


class VisualAnalysisClient:
    """Asynchronous analysis requests feeding a shared cache."""

    def __init__(self, settings: AnalysisSettings, cache: AnalysisCache,
                 pool: Optional[ConnectionPool] = None):
        self.settings = settings
        self.cache = cache
        self.pool = pool or ConnectionPool(pool_maxsize=settings.max_workers,
                                           retry_attempts=settings.retry_attempts)
        self._executor = ThreadPoolExecutor(max_workers=settings.max_workers,
                                            thread_name_prefix="slide-analysis")
        self.stats = {'submitted': 0, 'delivered': 0, 'failed': 0}

    def submit(self, slide_id: str, image: ExportedImage) -> Future:
        """Queue one slide image for analysis."""
        self.stats['submitted'] += 1
        return self._executor.submit(self._analyze, slide_id, image, self.cache.generation)

    def build_payload(self, slide_id: str, image: ExportedImage) -> Dict[str, Any]:
        return {
            'slide_id': slide_id,
            'image': base64.b64encode(image.data).decode('ascii'),
            'format': image.format.lower(),
            'width': image.width,
            'height': image.height,
        }

    def _analyze(self, slide_id: str, image: ExportedImage, generation: int) -> Optional[AnalysisResult]:
        status_code = None
        try:
            response = self.pool.post(
                self.settings.endpoint,
                timeout=self.settings.request_timeout,
                json=self.build_payload(slide_id, image),
            )
            status_code = response.status_code
            response.raise_for_status()
            result = AnalysisResult.from_dict(response.json(), image.width, image.height)
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            self.stats['failed'] += 1
            error = AnalysisServiceError(self.settings.endpoint, slide_id, status_code, cause=e)
            log_structured_error(error, logger)
            return None

        if not self.cache.put(slide_id, result, generation):
            return None
        self.stats['delivered'] += 1
        logger.debug(f"Analysis for slide {slide_id}: {len(result.regions)} regions, "
                     f"{result.layout.column_count if result.layout else 0} columns")
        return result

    def close(self):
        """Drop queued requests, wait for running ones, then release HTTP connections."""
        self._executor.shutdown(wait=True, cancel_futures=True)
        self.pool.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
