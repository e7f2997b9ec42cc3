from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, TypeVar

from tqdm import tqdm

__all__ = ["configure", "progress_iter"]

T = TypeVar("T")


@dataclass
class _ProgressConfig:
    progress: bool = False


_CONFIG = _ProgressConfig()


def configure(*, progress: bool | None = None) -> None:
    """Configure progress bar behavior."""
    if progress is not None:
        _CONFIG.progress = bool(progress)


def progress_iter(
    iterable: Iterable[T],
    *,
    desc: str | None = None,
    total: int | None = None,
) -> Iterable[T]:
    """Return an iterator with an optional progress bar."""
    if _CONFIG.progress:
        return tqdm(iterable, desc=desc, total=total)
    return iterable
