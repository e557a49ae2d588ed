"""
Copyright (c) 2019, Brian Stafford
Copyright (c) 2019-2020, the Decred developers
See LICENSE for details

Configuration settings for bitscript.
"""

import os

from appdirs import AppDirs

from bitscript import BitscriptError
from bitscript.btc import nets
from bitscript.util import helpers


# Set the data directory in a OS-appropriate location.
_ad = AppDirs("Bitscript", False)
DATA_DIR = _ad.user_data_dir

# The master configuration file name.
CONFIG_NAME = "bitscript.conf"
CONFIG_PATH = os.path.join(DATA_DIR, CONFIG_NAME)

# Keys recognized in the configuration file.
NETWORK_KEY = "network"
LOGLEVEL_KEY = "loglevel"
DEBUGLEVEL_KEY = "debuglevel"
CONFIG_KEYS = (NETWORK_KEY, LOGLEVEL_KEY, DEBUGLEVEL_KEY)

log = helpers.getLogger("CONFIG")


def parseDebugLevel(s):
    """
    Parse a comma-separated list of LOGGER=LEVEL entries, e.g.
    "TXSCRIPT=debug,CONFIG=warning".

    Args:
        s (str): The debug level string.

    Returns:
        dict: Logger name to logging level.
    """
    lvlMap = {}
    for entry in s.split(","):
        entry = entry.strip()
        if not entry:
            continue
        name, sep, lvl = entry.partition("=")
        if not sep or not name.strip():
            raise BitscriptError(f"invalid debuglevel entry {entry!r}")
        lvlMap[name.strip().upper()] = helpers.parseLevel(lvl)
    return lvlMap


class ScriptConfig:
    """
    ScriptConfig is configuration settings. The configuration file is INI
    formatted, with no section header required.
    """

    def __init__(self, netName=None, path=None):
        """
        Args:
            netName (str): optional. The network name. Overrides the network
                in the configuration file.
            path (str): optional. The configuration file path. Defaults to
                CONFIG_PATH. A missing file is not an error.
        """
        self.path = path if path else CONFIG_PATH
        self.file = {}
        if os.path.isfile(self.path):
            self.file = helpers.readINI(self.path, CONFIG_KEYS)
        else:
            log.debug(f"no configuration file at {self.path}")

        netName = netName if netName else self.file.get(NETWORK_KEY, "mainnet")
        self.netParams = nets.parse(netName.strip())
        self.logLevel = helpers.parseLevel(self.file.get(LOGLEVEL_KEY, "info"))
        self.lvlMap = parseDebugLevel(self.file.get(DEBUGLEVEL_KEY, ""))

    def get(self, k):
        """
        Retrieve the raw setting from the configuration file.

        Args:
            k (str): The setting key.

        Returns:
            str: The configuration value, or None if not set.
        """
        return self.file.get(k)

    def prepareLogging(self, filepath=None):
        """
        Apply the configured log levels. See helpers.prepareLogging.

        Args:
            filepath (str): optional. The base name for a rotating log file.
        """
        helpers.prepareLogging(filepath, logLvl=self.logLevel, lvlMap=self.lvlMap)


scriptConfig = None


def load(netName=None):
    """
    Load and return the current configuration.

    The configuration is only loaded once. Successive calls to the modular `load`
    function will return the same instance.

    Returns:
        ScriptConfig: The current configuration.
    """
    global scriptConfig
    if not scriptConfig:
        scriptConfig = ScriptConfig(netName)
    return scriptConfig
