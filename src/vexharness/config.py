"""
Network configuration for the VEX harness.

Resolves a network name to an immutable ``NetworkConfig`` bundle: RPC and
UI endpoints, the fixed gas budget, and the well-known contract / account
identifiers the scenarios talk to.

Only ``testnet`` is populated.  Unknown names fail with ``ConfigError``
instead of returning a partially filled config.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any


class ConfigError(RuntimeError):
    exit_code: int = 2


@dataclass(frozen=True)
class NetworkConfig:
    network_id: str
    node_url: str
    wallet_url: str
    helper_url: str
    explorer_url: str
    gas: str
    gas_max: str
    staking_contract: str
    betting_contract: str
    owner_account: str
    vex_token: str
    usdc_token: str
    exchange_contract: str
    exchange_pool_id: int

    @property
    def gas_units(self) -> int:
        return int(self.gas)

    @property
    def gas_max_units(self) -> int:
        return int(self.gas_max)

    def explorer_tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url.rstrip('/')}/transactions/{tx_hash}"

    def explorer_account_url(self, account_id: str) -> str:
        return f"{self.explorer_url.rstrip('/')}/accounts/{account_id}"

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# 300 TGas, the per-call ceiling on NEAR
DEFAULT_GAS = "300000000000000"

_NETWORKS: dict[str, NetworkConfig] = {
    "testnet": NetworkConfig(
        network_id="testnet",
        node_url="https://rpc.testnet.near.org",
        wallet_url="https://wallet.testnet.near.org",
        helper_url="https://helper.testnet.near.org",
        explorer_url="https://explorer.testnet.near.org",
        gas=DEFAULT_GAS,
        gas_max=DEFAULT_GAS,
        staking_contract="stake.vex-betting.testnet",
        betting_contract="betting.vex-betting.testnet",
        owner_account="vier1near.testnet",
        vex_token="vex.vex-betting.testnet",
        usdc_token="cusd.fakes.testnet",
        exchange_contract="ref-finance-101.testnet",
        exchange_pool_id=1916,
    ),
}

SUPPORTED_NETWORKS: tuple[str, ...] = tuple(_NETWORKS)


def resolve(network: str = "testnet", **overrides: Any) -> NetworkConfig:
    """
    Resolve a network name to its configuration.

    Args:
        network: Network name (only "testnet" is supported)
        **overrides: Field values replacing the table defaults.
                     ``None`` values are ignored.

    Returns:
        Immutable NetworkConfig

    Raises:
        ConfigError: Unknown network, unknown override field, or a
                     required field left empty
    """
    try:
        config = _NETWORKS[network]
    except KeyError:
        supported = ", ".join(SUPPORTED_NETWORKS)
        raise ConfigError(
            f"Unknown network {network!r} (supported: {supported})"
        ) from None

    known = {f.name for f in fields(NetworkConfig)}
    changes = {k: v for k, v in overrides.items() if v is not None}
    unknown = sorted(set(changes) - known)
    if unknown:
        raise ConfigError(f"Unknown config field(s): {', '.join(unknown)}")
    if "network_id" in changes and changes["network_id"] != network:
        raise ConfigError("network_id cannot be overridden")

    if changes:
        config = replace(config, **changes)

    _validate(config)
    return config


def _validate(config: NetworkConfig) -> None:
    for f in fields(config):
        value = getattr(config, f.name)
        if isinstance(value, str) and not value.strip():
            raise ConfigError(f"Config field {f.name!r} must not be empty")

    for name in ("gas", "gas_max"):
        value = getattr(config, name)
        if not value.isdigit() or int(value) <= 0:
            raise ConfigError(f"Config field {name!r} must be a positive integer string, got {value!r}")
