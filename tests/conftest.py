"""
Shared pytest fixtures for locproof tests.
"""

import pytest

from locproof import (
    GenericMessage,
    LocationProofMessage,
    ProofConfig,
    ServerKey,
    SignerRegistry,
)
from locproof.metrics import ProofMetrics


# Ed25519 seed 0x01 * 32 and the values it produces.
TEST_SEED = bytes([1]) * 32
TEST_PUBLIC_KEY = "8a88e3dd7409f195fd52db2d3cba5d72ca6709bf1d94121bf3748801b40f6f5c"
TEST_ADDRESS = "29dfbf688abce7ab43bb8e70cae158ae961196e721440f515482f8ba1684390f"

LOCATION_HASH = "0x16217de8ec7330ec3eac32831df5c9cd9b21a255756a5fd5762dd7f49f6cc049"
PLAYER_ADDRESS = "0x" + "22" * 32
SOURCE_STRUCTURE_ID = "0x" + "33" * 32
TARGET_STRUCTURE_ID = "0x" + "44" * 32

# A fixed point in time used as "now" throughout the tests.
NOW_MS = 1_760_000_000_000

# Proofs issued by a deployed server. They are signed over RAW intent framing.
DEPLOYED_SERVER_PUBLIC_KEY = "a94e21ea26cc336019c11a5e10c4b39160188dda0f6b4bfe198dd689db8f3df9"
DEPLOYED_SERVER_ADDRESS = "93d3209c7f138aded41dcb008d066ae872ed558bd8dcb562da47d4ef78295333"
PLAYER_A_PROOF = (
    "0x93d3209c7f138aded41dcb008d066ae872ed558bd8dcb562da47d4ef78295333202d7d52ab5f8e8824e3e8066c0b7458"
    "f84e326c5d77b30254c69d807586a7b0f43bdede72c5d278d948f867aa90fb727fdffa9ba4d839b0e2c0cc0ac3e1e75120"
    "16217de8ec7330ec3eac32831df5c9cd9b21a255756a5fd5762dd7f49f6cc049b3b56d41eed613fb7e4d4a30c64923da4f"
    "9ba6db07473563f701088c522823012016217de8ec7330ec3eac32831df5c9cd9b21a255756a5fd5762dd7f49f6cc04900"
    "0000000000000000b21b7e2c9d0100006100a78ca10b89e4d160ece92743d5f331410011cb5b05f002a009f40b4c90f263"
    "8e83d05d768ec0380879467f83151c10bc9273d27069091d97968d06b078433c0ca94e21ea26cc336019c11a5e10c4b391"
    "60188dda0f6b4bfe198dd689db8f3df9"
)
PLAYER_A_DEADLINE_MS = 1774567955378
PLAYER_B_PROOF = (
    "0x93d3209c7f138aded41dcb008d066ae872ed558bd8dcb562da47d4ef78295333442aef3f2869a83dff4a072aad5ae2a7"
    "8f7718c8d3e5358ce1829256e11686c85ec0c3a230bb84bdfd640d8ab9cd4994f9d6e2dfbf9ba5ebcd34295e1805e22d20"
    "16217de8ec7330ec3eac32831df5c9cd9b21a255756a5fd5762dd7f49f6cc0494f0b2638684dd0bd50f2a4616d4d9e60c8"
    "30ec9b628f165df8aa6b906fda7f0d2016217de8ec7330ec3eac32831df5c9cd9b21a255756a5fd5762dd7f49f6cc04900"
    "0000000000000000ad58c4229d01000061001266b01b26181b8d10ed267bf5ecbe34cdf3b083bc80e9e4c9c285a2f73dd6"
    "d38c4b445b1875d7e59576a8169c76bf9fb5b234fe46778f11fb86498b274f3704a94e21ea26cc336019c11a5e10c4b391"
    "60188dda0f6b4bfe198dd689db8f3df9"
)
PLAYER_B_DEADLINE_MS = 1774404786349


@pytest.fixture
def server_key() -> ServerKey:
    """Deterministic server key."""
    return ServerKey.from_seed(TEST_SEED)


@pytest.fixture
def other_key() -> ServerKey:
    """A second, unrelated server key."""
    return ServerKey.generate()


@pytest.fixture
def config() -> ProofConfig:
    """Config with a frozen clock."""
    return ProofConfig(clock=lambda: NOW_MS)


@pytest.fixture
def registry(server_key: ServerKey) -> SignerRegistry:
    """Registry authorizing only the test server key."""
    reg = SignerRegistry()
    reg.register(server_key.public_key_bytes, name="test-server")
    return reg


@pytest.fixture
def metrics() -> ProofMetrics:
    return ProofMetrics(namespace="locproof_test")


@pytest.fixture
def location_message(server_key: ServerKey) -> LocationProofMessage:
    """Location proof message signed-for by the test server key."""
    return LocationProofMessage(
        server_address=server_key.address,
        player_address=PLAYER_ADDRESS,
        source_structure_id=SOURCE_STRUCTURE_ID,
        source_location_hash=bytes.fromhex(LOCATION_HASH[2:]),
        target_structure_id=TARGET_STRUCTURE_ID,
        target_location_hash=bytes.fromhex(LOCATION_HASH[2:]),
        distance=0,
        data=b"",
        deadline_ms=NOW_MS + 60_000,
    )


@pytest.fixture
def generic_message(server_key: ServerKey) -> GenericMessage:
    return GenericMessage(
        from_address=server_key.address,
        custom_message=b"I as a server attest this character is in this location",
        distance=0,
    )
