"""
Existence checks against the default branch of the metadata repository.
"""
import logging
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import get_metadata_branch, get_metadata_repository
from .constants import RAW_CONTENT_URL


class RemoteFileChecker:
    """
    Answers whether a file exists on the default branch of the metadata repository.

    A HEAD request is sent to the raw-content URL of the file; only a
    successful response counts as "exists".
    """

    def __init__(
        self,
        repository: Optional[str] = None,
        branch: Optional[str] = None,
        retry_count: int = 3,
        timeout: int = 10,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the checker

        Args:
            repository: GitHub <org>/<repo> (defaults to configuration)
            branch: Branch to check (defaults to configuration)
            retry_count: Number of retries for HTTP requests
            timeout: Timeout for HTTP requests in seconds
            session: Optional preconfigured requests session
            logger: Optional logger instance
        """
        self.repository = repository or get_metadata_repository()
        self.branch = branch or get_metadata_branch()
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

        if session is None:
            session = requests.Session()
            retries = Retry(
                total=retry_count,
                backoff_factor=0.5,
                status_forcelist=[500, 502, 503, 504],
                allowed_methods=["HEAD"],
                raise_on_status=False,
            )
            session.mount("https://", HTTPAdapter(max_retries=retries))
        self.session = session

    def raw_url(self, file_path: str) -> str:
        """Raw-content URL of a repository-relative path."""
        path = file_path.replace("\\", "/")
        # Absolute or ./-prefixed checkouts map onto the repository root
        start = path.find("data/agendas/")
        if start > 0:
            path = path[start:]
        return RAW_CONTENT_URL.format(repository=self.repository, branch=self.branch, path=path)

    def exists(self, file_path: str) -> bool:
        """
        Check whether `file_path` exists on the remote default branch.

        Network failures are logged and reported as "does not exist".
        """
        url = self.raw_url(file_path)
        try:
            response = self.session.head(url, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as e:
            self.logger.warning(f"Could not check file existence on GitHub: {e}")
            return False
        self.logger.debug(f"HEAD {url} -> {response.status_code}")
        return response.ok
