"""
Copyright (c) 2020, The Decred developers
See LICENSE for details.

mainnet holds the mainnet address encoding parameters. Any values should mirror
exactly https://github.com/btcsuite/btcd/blob/master/chaincfg/params.go
"""

Name = "mainnet"
GenesisHash = "000000000019d6689c085ae165831e934ff763ae46a2a6c172b3f1b60a8ce26f"

# Address encoding magics
PubKeyHashAddrID = 0x00  # starts with 1
ScriptHashAddrID = 0x05  # starts with 3
