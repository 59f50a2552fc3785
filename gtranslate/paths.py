"""
Validation of the cache and cookie directories a session is given.
"""

import errno
import os
from pathlib import Path
from typing import Union

import structlog

from .errors import ConfigurationError

logger = structlog.get_logger(__name__)

MAX_PATH_BYTES = 511


def validate_directory(path: Union[str, Path]) -> str:
    """Check that ``path`` is an existing directory we can read and write.

    Returns:
        The path as a string.

    Raises:
        ConfigurationError: with the OS error text when the check fails.
    """
    if path is None:
        raise ConfigurationError(os.strerror(errno.EINVAL))

    path = os.fspath(path)
    if len(os.fsencode(path)) > MAX_PATH_BYTES:
        raise ConfigurationError(os.strerror(errno.ENAMETOOLONG))

    if not os.path.exists(path):
        logger.warning("directory_missing", path=path)
        raise ConfigurationError(os.strerror(errno.ENOENT))

    if not os.path.isdir(path):
        logger.warning("not_a_directory", path=path)
        raise ConfigurationError(os.strerror(errno.ENOTDIR))

    if not os.access(path, os.R_OK | os.W_OK):
        logger.warning("directory_not_accessible", path=path)
        raise ConfigurationError(os.strerror(errno.EACCES))

    return path
