"""
Copyright (c) 2020, The Decred developers
See LICENSE for details.
"""

from bitscript import BitscriptError

from . import mainnet, regtest, simnet, testnet


the_nets = {n.Name: n for n in (mainnet, testnet, simnet, regtest)}
if "testnet3" in the_nets:
    the_nets["testnet"] = the_nets["testnet3"]
if "regtest" in the_nets:
    the_nets["regnet"] = the_nets["regtest"]


def parse(name):
    """
    Get the network parameters based on the network name.
    """
    try:
        return the_nets[name]
    except KeyError:
        raise BitscriptError(f"unrecognized network name {name}")


def normalizeName(netName):
    """
    Remove the numerals from testnet.

    Args:
        netName (string): The raw network name.

    Returns:
        string: The network name with numerals stripped.
    """
    return "testnet" if "testnet" in netName else netName
