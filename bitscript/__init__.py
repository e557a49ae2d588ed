"""
Copyright (c) 2019-2020, the Decred developers
See LICENSE for details

bitscript recognizes and builds standard Bitcoin locking and unlocking
scripts.
"""


class BitscriptError(Exception):
    pass
