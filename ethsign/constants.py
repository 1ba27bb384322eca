#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# System constants.
#
import os

# storage path prefix for account records; full path is prefix + address
ACCOUNTS_PREFIX = 'accounts/'

# sizes, in bytes
PRIVKEY_SIZE = 32
PUBKEY_SIZE = 65            # uncompressed: 0x04 + x + y
ADDRESS_SIZE = 20
DIGEST_SIZE = 32
SIGNATURE_SIZE = 65         # r + s + v

# order of the secp256k1 group; valid private keys are 1 .. N-1
SECP256K1_ORDER = 0xfffffffffffffffffffffffffffffffebaaedce6af48a03bbfd25e8cd0364141

# Ethereum legacy convention: recovery id {0,1} is sent as {27,28}
ETH_SIGNATURE_V_OFFSET = 27

# prefix for EIP-191 "personal_sign" messages
ETH_MESSAGE_PREFIX = b'\x19Ethereum Signed Message:\n'

# grammars for untrusted input
ADDRESS_PATTERN = r'^(0x)?[0-9a-fA-F]{40}$'
PRIVKEY_PATTERN = r'[0-9a-fA-F]{64}\Z'

# Unix socket used by "ethsign serve" and clients
DEFAULT_PIPE = '/tmp/ethsign-pipe'

# local vault file when not talking to a server
DEFAULT_VAULT_FILE = os.path.join('~', '.ethsign', 'vault.cbor')

# largest request/response we will accept over the socket
MAX_MSG_SIZE = 1 << 20

# EOF
