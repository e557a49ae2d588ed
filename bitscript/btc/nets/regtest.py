"""
Copyright (c) 2020, The Decred developers
See LICENSE for details.

regtest holds the regtest address encoding parameters. Any values should mirror
exactly https://github.com/btcsuite/btcd/blob/master/chaincfg/params.go
"""

Name = "regtest"
GenesisHash = "0f9188f13cb7b2c71f2a335e3a4fc328bf5beb436012afca590b1a11466e2206"

# Address encoding magics
PubKeyHashAddrID = 0x6F  # starts with m or n
ScriptHashAddrID = 0xC4  # starts with 2
