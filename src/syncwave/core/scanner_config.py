"""Configuration for scanner behavior and performance tuning."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ScannerConfig:
    """Configuration for DirectoryScanner behavior.

    Attributes:
        max_concurrent_files: Maximum files extracted in parallel per directory (default: 10)
        metadata_workers: Thread pool size for metadata extraction (default: min(8, max_concurrent_files * 2))
        follow_symlinks: Follow symlinks whose target stays inside the root (default: True)
        progress_log_interval: Log progress every N indexed files (default: 500)

    Example:
        >>> config = ScannerConfig(max_concurrent_files=20)
        >>> scanner = DirectoryScanner(index, config=config)
    """

    max_concurrent_files: int = 10
    metadata_workers: Optional[int] = None  # Default: min(8, max_concurrent_files * 2)
    follow_symlinks: bool = True
    progress_log_interval: int = 500

    def __post_init__(self):
        """Validate configuration values and set computed defaults.

        Raises:
            ValueError: If any configuration value is invalid.
        """
        if self.metadata_workers is None:
            self.metadata_workers = min(8, self.max_concurrent_files * 2)
        if self.max_concurrent_files < 1:
            raise ValueError("max_concurrent_files must be >= 1")
        if self.metadata_workers < 1:
            raise ValueError("metadata_workers must be >= 1")
        if self.progress_log_interval < 1:
            raise ValueError("progress_log_interval must be >= 1")
