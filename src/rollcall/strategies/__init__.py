"""Directory strategies, one per flavor of directory server."""

from __future__ import annotations

from structlog.stdlib import BoundLogger

from ..config import DirectoryConfig
from ..models.directory import DirectoryVariant
from .base import DirectoryStrategy
from .general import GeneralStrategy
from .univention import UniventionStrategy

__all__ = [
    "DirectoryStrategy",
    "GeneralStrategy",
    "UniventionStrategy",
    "build_strategy",
]

_STRATEGIES: dict[DirectoryVariant, type[DirectoryStrategy]] = {
    DirectoryVariant.general: GeneralStrategy,
    DirectoryVariant.univention: UniventionStrategy,
}


def build_strategy(
    config: DirectoryConfig, logger: BoundLogger
) -> DirectoryStrategy:
    """Construct the strategy for the variant of a directory.

    Parameters
    ----------
    config
        Configuration of the directory server.
    logger
        Logger to use.

    Returns
    -------
    DirectoryStrategy
        Strategy matching ``config.provider``.
    """
    return _STRATEGIES[config.provider](config, logger)
