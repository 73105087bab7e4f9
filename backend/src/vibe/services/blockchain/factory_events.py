"""Detection of new collection contracts deployed by the factory.

The factory contract is watched with an ADDRESS_ACTIVITY webhook. A deployment is
a zero-value ETH transaction to the factory whose block contains exactly two
factory logs:
- logs[0]: ERC-721 created, topics[2] = new token contract
- logs[1]: mint sale created, topics[2] = sale contract
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog
from web3 import Web3

from vibe.services.blockchain.networks import alchemy_rpc_url, normalize_network

logger = structlog.get_logger()

Web3Factory = Callable[[str], Web3]


@dataclass(frozen=True)
class FactoryDeployment:
    network: str
    token_address: str
    sale_contract_address: str
    tx_hash: str | None
    block_number: int


def make_web3_factory(api_key: str) -> Web3Factory:
    """Return a per-network Web3 provider factory backed by Alchemy RPC.

    Instances are created lazily and reused for the lifetime of the factory.
    """
    clients: dict[str, Web3] = {}

    def _get(network: str) -> Web3:
        network = normalize_network(network)
        if network not in clients:
            clients[network] = Web3(Web3.HTTPProvider(alchemy_rpc_url(network, api_key)))
        return clients[network]

    return _get


def is_factory_transaction(activity: dict[str, Any]) -> bool:
    """Return True for zero-value ETH activities (factory create calls)."""
    if activity.get("asset") != "ETH":
        return False
    try:
        return float(activity.get("value", 0)) == 0
    except (TypeError, ValueError):
        return False


def _topic_address(topic: Any) -> str:
    # HexBytes, bytes or 0x-prefixed str; the address is the last 20 bytes
    topic_hex = topic.hex() if isinstance(topic, (bytes, bytearray)) else str(topic)
    return "0x" + topic_hex[-40:].lower()


def decode_factory_logs(logs: list[Any]) -> tuple[str, str] | None:
    """Extract (token_address, sale_contract_address) from a factory block's logs.

    Returns:
        The address pair, or None unless exactly two logs with indexed addresses are present
    """
    if len(logs) != 2:
        return None
    create_token_log, create_sale_log = logs
    if len(create_token_log["topics"]) < 3 or len(create_sale_log["topics"]) < 3:
        return None
    return _topic_address(create_token_log["topics"][2]), _topic_address(create_sale_log["topics"][2])


def fetch_block_logs(w3: Web3, address: str, block_number: int) -> list[Any]:
    """Fetch all logs emitted by address in one block (blocking RPC call)."""
    return list(
        w3.eth.get_logs(
            {
                "fromBlock": block_number,
                "toBlock": block_number,
                "address": Web3.to_checksum_address(address),
            }
        )
    )


async def find_factory_deployments(
    network: str,
    activities: list[Any],
    web3_factory: Web3Factory,
) -> list[FactoryDeployment]:
    """Find collection deployments among ADDRESS_ACTIVITY records.

    Activities that fail to decode or whose RPC lookup fails are logged and skipped.
    """
    network = normalize_network(network)
    deployments: list[FactoryDeployment] = []

    for index, activity in enumerate(activities):
        if not isinstance(activity, dict) or not is_factory_transaction(activity):
            continue

        factory_address = activity.get("toAddress")
        block_num = activity.get("blockNum")
        if not factory_address or block_num is None:
            logger.warning("factory_events.incomplete_activity", activity_index=index)
            continue

        try:
            block_number = int(block_num, 0) if isinstance(block_num, str) else int(block_num)
            w3 = web3_factory(network)
            logs = await asyncio.to_thread(fetch_block_logs, w3, factory_address, block_number)
        except Exception as e:
            logger.error(
                "factory_events.logs_fetch_failed",
                activity_index=index,
                network=network,
                factory_address=factory_address,
                error=str(e),
                error_type=type(e).__name__,
            )
            continue

        addresses = decode_factory_logs(logs)
        if addresses is None:
            logger.debug(
                "factory_events.not_a_deployment",
                activity_index=index,
                block_number=block_number,
                log_count=len(logs),
            )
            continue

        token_address, sale_contract_address = addresses
        deployment = FactoryDeployment(
            network=network,
            token_address=token_address,
            sale_contract_address=sale_contract_address,
            tx_hash=activity.get("hash"),
            block_number=block_number,
        )
        logger.info(
            "factory_events.deployment_detected",
            network=network,
            token_address=token_address,
            sale_contract_address=sale_contract_address,
            tx_hash=deployment.tx_hash,
        )
        deployments.append(deployment)

    return deployments
