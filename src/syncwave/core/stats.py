"""Statistics for scan operations."""

from dataclasses import dataclass


@dataclass
class ScanStats:
    """Statistics for one directory scan.

    Attributes:
        indexed: Entries built and handed to the index.
        errors: Supported files whose metadata could not be read.
        skipped_dirs: Subtrees skipped because they could not be listed.
        missing_roots: Configured roots that do not exist.

    Example:
        >>> stats = ScanStats()
        >>> stats.indexed += 1
        >>> print(stats)
        ScanStats(indexed=1, errors=0, skipped_dirs=0, missing_roots=0)
    """

    indexed: int = 0
    errors: int = 0
    skipped_dirs: int = 0
    missing_roots: int = 0

    def __str__(self) -> str:
        return (
            f"ScanStats(indexed={self.indexed}, errors={self.errors}, "
            f"skipped_dirs={self.skipped_dirs}, missing_roots={self.missing_roots})"
        )
