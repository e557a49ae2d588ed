"""
Copyright (c) 2020, The Decred developers
See LICENSE for details.

simnet holds the simnet address encoding parameters. Any values should mirror
exactly https://github.com/btcsuite/btcd/blob/master/chaincfg/params.go
"""

Name = "simnet"
GenesisHash = "683e86bd5c6d110d91b94b97137ba6bfe02dbbdb8e3dff722a669b5d69d77af6"

# Address encoding magics
PubKeyHashAddrID = 0x3F  # starts with S
ScriptHashAddrID = 0x7B  # starts with s
