"""Messenger spec configuration constants.

Keep this file aligned with the Solidity `Messenger` contract ABI types
(`address`, `uint256`) and its revert strings.
"""

# Account identifiers (EVM `address`)
ADDRESS_SIZE = 20
ZERO_ADDRESS = bytes(ADDRESS_SIZE)

# Value bounds (EVM `uint256`)
U256_MAX = (1 << 256) - 1

# Units
WEI_PER_ETHER = 10**18

# Revert strings surfaced to callers
ALREADY_CONFIRMED_MESSAGE = "This message has already been confirmed"
UNAUTHORIZED_MESSAGE = "Only the receiver can confirm this message"

# Identity of the ledger itself in exported state. First contract deployed by
# the default devnet deployer (nonce 0).
DEFAULT_CONTRACT_ADDRESS = bytes.fromhex("5fbdb2315678afecb367f032d93f642f64180aa3")

# Fixture / vector format
FIXTURE_FORMAT_VERSION = 1
