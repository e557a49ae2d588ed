"""
Copyright (c) 2019, Brian Stafford
Copyright (c) 2019-2020, The Decred developers
See LICENSE for details
"""

import configparser
import logging
from logging import Logger
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Union

from bitscript import BitscriptError


class LogSettings:
    """
    The default level, the per-logger levels, the loggers handed out by
    getLogger and the handlers attached to the root logger.
    """

    root = logging.getLogger("")
    defaultLevel = logging.INFO
    moduleLevels: Dict[str, int] = {}
    loggers: Dict[str, Logger] = {}
    handlers: Dict[str, logging.Handler] = {}


LogSettings.root.setLevel(logging.NOTSET)

LOG_FORMAT = "%(asctime)s %(module)s %(levelname)s %(funcName)s(%(lineno)d) %(message)s"


def addHandler(key: str, newHandler: Callable[[], logging.Handler]) -> None:
    """Attach a formatted handler to the root logger, once per key."""
    if key in LogSettings.handlers:
        return
    handler = newHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    LogSettings.root.addHandler(handler)
    LogSettings.handlers[key] = handler


def prepareLogging(
    filepath: Union[Path, str, None] = None,
    logLvl: int = logging.INFO,
    lvlMap: Optional[Dict[str, int]] = None,
) -> None:
    """
    Set the log levels and make sure output goes to stderr and, when filepath
    is given, to a rotating log file. Loggers already returned by getLogger are
    updated too.

    Args:
        filepath: The rotating log file.
        logLvl: The level for loggers that have no entry in lvlMap.
        lvlMap: Logger name to level. Merged into the stored levels.
    """
    LogSettings.defaultLevel = logLvl
    LogSettings.moduleLevels.update(lvlMap or {})
    for name, logger in LogSettings.loggers.items():
        logger.setLevel(LogSettings.moduleLevels.get(name, logLvl))

    addHandler("stream", logging.StreamHandler)
    if filepath:
        addHandler(
            str(filepath),
            lambda: RotatingFileHandler(
                filepath, maxBytes=5 * 1024 * 1024, backupCount=2
            ),
        )


def getLogger(name: str) -> Logger:
    """
    Gets a named logger. If the name has a log level registered with
    prepareLogger, that level will be used, otherwise the default is used.

    Args:
        name: The logger name.
    """
    l = LogSettings.root.getChild(name)
    l.setLevel(LogSettings.moduleLevels.get(name, LogSettings.defaultLevel))
    LogSettings.loggers[name] = l
    return l


def parseLevel(lvl: Union[int, str]) -> int:
    """
    Convert a level name such as "debug" or "WARNING" to its logging level.
    Integers are passed through.

    Args:
        lvl: The level name or number.

    Returns:
        The logging level.
    """
    if isinstance(lvl, int):
        return lvl
    level = logging.getLevelName(lvl.strip().upper())
    if not isinstance(level, int):
        raise BitscriptError(f"unknown log level {lvl!r}")
    return level


def readINI(path: Union[Path, str], keys: Iterable[str]) -> Dict[str, str]:
    """
    Attempt to read the specified keys from the INI-formatted configuration
    file. All sections will be searched. A dict with discovered keys and
    values will be returned. If a key is not discovered, it will not be
    present in the result.

    Args:
        path: The path to the INI configuration file.
        keys: Keys to search for.

    Returns:
        Discovered keys and values.
    """
    config = configparser.ConfigParser(strict=False)
    # Need to add a section header since configparser doesn't handle sectionless
    # INI format.
    with open(path) as f:
        config.read_string("[bitscript]\n" + f.read())
    res = {}
    for section in config.sections():
        for k in config[section]:
            if k in keys:
                res[k] = config[section][k]
    return res
