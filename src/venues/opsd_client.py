"""
HTTP client for the Open Power System Data (OPSD) time-series download.

**Conceptual**: This is a "thin client" - it knows about HTTP and nothing
else. It fetches the CSV bytes and hands them back untouched; turning bytes
into a RawTable is src.data.io's job, and turning the table into Records is
the transform package's job.

**Error handling**: Any failure (non-200 status, timeout, connection
refused) is a DownloadError. The pipeline is fail-fast, so the client does
not retry.
"""

import requests

from src.config.settings import DatasetSettings


class DownloadError(Exception):
    """
    Raised when the dataset cannot be downloaded.

    Attributes:
        status_code: HTTP status when the server answered, else None.
    """

    def __init__(self, message: str, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class OpsdClient:
    """
    Thin HTTP client that downloads the OPSD CSV payload.

    **Example usage**:
        >>> from src.config.settings import get_settings
        >>> with OpsdClient(get_settings().dataset) as client:
        ...     payload = client.download()
        >>> payload[:13]
        b'utc_timestamp'
    """

    def __init__(self, settings: DatasetSettings):
        """
        Args:
            settings: Dataset URL and timeout.
        """
        self.settings = settings
        self.session = requests.Session()
        self.session.headers.update({
            "Accept": "text/csv",
            "User-Agent": "opsd_load_publisher/1.0",
        })

    def download(self) -> bytes:
        """
        Fetch the dataset CSV.

        **HTTP request details**:
          - Method: GET
          - URL: settings.url
          - Timeout: settings.timeout_seconds

        Returns:
            Raw response body (CSV bytes).

        Raises:
            DownloadError: If the status is not 200 or the request fails.
        """
        url = self.settings.url
        try:
            response = self.session.get(url, timeout=self.settings.timeout_seconds)
        except requests.Timeout as e:
            raise DownloadError(
                f"Download of {url} timed out after {self.settings.timeout_seconds}s"
            ) from e
        except requests.ConnectionError as e:
            raise DownloadError(
                f"Failed to connect to {url}. Check network connection and URL."
            ) from e
        except requests.RequestException as e:
            raise DownloadError(f"HTTP request to {url} failed: {e}") from e

        if response.status_code != 200:
            raise DownloadError(
                f"Error downloading dataset: status {response.status_code} from {url}",
                status_code=response.status_code,
            )

        return response.content

    def close(self):
        """Close the HTTP session and release resources."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions
