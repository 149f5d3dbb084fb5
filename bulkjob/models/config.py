"""Client configuration."""

import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

DEFAULT_BASE_URL = "https://api.nue.io"


@dataclass
class JobConfig:
    """Settings shared by the client, submitter, poller and downloader."""

    # Connection
    base_url: str = DEFAULT_BASE_URL
    api_key: Optional[str] = None
    api_key_header: str = "nue-api-key"
    request_timeout: float = 60.0
    max_retries: int = 3
    backoff_factor: float = 2.0

    # Polling
    poll_interval: float = 5.0
    not_found_delay: float = 2.0
    default_timeout: float = 300.0
    max_timeout: float = 3600.0

    # Jobs
    import_operation: str = "upsert"
    output_dir: str = "."
    verbose: bool = False

    def effective_timeout(self, requested: Optional[float] = None) -> float:
        """
        Polling ceiling for one job.

        Args:
            requested: Caller-supplied timeout in seconds, or None for the default

        Returns:
            The requested timeout bounded by max_timeout
        """
        timeout = self.default_timeout if requested is None or requested <= 0 else requested
        return min(float(timeout), float(self.max_timeout))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation (without the API key)."""
        return {
            "base_url": self.base_url,
            "api_key_header": self.api_key_header,
            "request_timeout": self.request_timeout,
            "max_retries": self.max_retries,
            "backoff_factor": self.backoff_factor,
            "poll_interval": self.poll_interval,
            "not_found_delay": self.not_found_delay,
            "default_timeout": self.default_timeout,
            "max_timeout": self.max_timeout,
            "import_operation": self.import_operation,
            "output_dir": self.output_dir,
            "verbose": self.verbose,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobConfig":
        """Create from dictionary representation."""
        return cls(
            base_url=data.get("base_url", DEFAULT_BASE_URL).rstrip("/"),
            api_key=data.get("api_key"),
            api_key_header=data.get("api_key_header", "nue-api-key"),
            request_timeout=float(data.get("request_timeout", 60.0)),
            max_retries=int(data.get("max_retries", 3)),
            backoff_factor=float(data.get("backoff_factor", 2.0)),
            poll_interval=float(data.get("poll_interval", 5.0)),
            not_found_delay=float(data.get("not_found_delay", 2.0)),
            default_timeout=float(data.get("default_timeout", 300.0)),
            max_timeout=float(data.get("max_timeout", 3600.0)),
            import_operation=data.get("import_operation", "upsert"),
            output_dir=data.get("output_dir", "."),
            verbose=bool(data.get("verbose", False)),
        )

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any
    ) -> "JobConfig":
        """Create from BULKJOB_* environment variables plus explicit overrides."""
        env = os.environ if environ is None else environ
        data: Dict[str, Any] = {}
        if env.get("BULKJOB_API_URL"):
            data["base_url"] = env["BULKJOB_API_URL"]
        if env.get("BULKJOB_API_KEY"):
            data["api_key"] = env["BULKJOB_API_KEY"]
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(data)
