"""Alchemy network naming and RPC endpoints.

Webhook payloads and the Notify API use enum-style names (``ARB_MAINNET``);
RPC and NFT API hosts use slugs (``arb-mainnet``).
"""

CHAIN_IDS: dict[str, int] = {
    "ETH_MAINNET": 1,
    "ETH_GOERLI": 5,
    "ETH_SEPOLIA": 11155111,
    "ARB_MAINNET": 42161,
    "ARB_GOERLI": 421613,
    "ARB_SEPOLIA": 421614,
}

NETWORKS_BY_CHAIN_ID: dict[int, str] = {chain_id: network for network, chain_id in CHAIN_IDS.items()}


def normalize_network(network: str) -> str:
    """Normalize ``arb-mainnet`` / ``arb_mainnet`` / ``ARB_MAINNET`` to ``ARB_MAINNET``."""
    return network.strip().upper().replace("-", "_")


def network_slug(network: str) -> str:
    """Convert a network name to its Alchemy host slug (``ARB_MAINNET`` -> ``arb-mainnet``)."""
    return normalize_network(network).lower().replace("_", "-")


def chain_id_for_network(network: str | None) -> int | None:
    """Return the chain id for a network name, or None if unknown."""
    if not network:
        return None
    return CHAIN_IDS.get(normalize_network(network))


def network_for_chain_id(chain_id: int) -> str:
    """Return the network name for a chain id.

    Raises:
        ValueError: If the chain is not supported
    """
    try:
        return NETWORKS_BY_CHAIN_ID[chain_id]
    except KeyError:
        raise ValueError(f"Unsupported chain id: {chain_id}") from None


def alchemy_rpc_url(network: str, api_key: str) -> str:
    """Build the Alchemy JSON-RPC URL for a network."""
    return f"https://{network_slug(network)}.g.alchemy.com/v2/{api_key}"


def alchemy_nft_api_url(network: str, api_key: str) -> str:
    """Build the Alchemy NFT API (v3) base URL for a network."""
    return f"https://{network_slug(network)}.g.alchemy.com/nft/v3/{api_key}"
