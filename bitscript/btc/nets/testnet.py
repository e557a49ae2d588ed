"""
Copyright (c) 2020, The Decred developers
See LICENSE for details.

testnet holds the testnet address encoding parameters. Any values should mirror
exactly https://github.com/btcsuite/btcd/blob/master/chaincfg/params.go
"""

Name = "testnet3"
GenesisHash = "000000000933ea01ad0ee984209779baaec3ced90fa3f408719526f8d77f4943"

# Address encoding magics
PubKeyHashAddrID = 0x6F  # starts with m or n
ScriptHashAddrID = 0xC4  # starts with 2
