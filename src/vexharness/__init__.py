__all__ = [
    # Config
    "NetworkConfig",
    "ConfigError",
    "SUPPORTED_NETWORKS",
    "resolve",
    # Keys
    "KeyPair",
    "KeyStore",
    "KeyFormatError",
    "generate_key_pair",
    "parse_key_pair",
    # Ledger
    "LedgerRpc",
    "RemoteCallError",
    "Session",
    "CallOutcome",
    "ContractHandle",
    "Participant",
    "create_session",
    # Scenarios
    "SCENARIOS",
    "Scenario",
    "ScenarioContext",
    "ScenarioResult",
    "run_scenario",
    "run_scenarios",
]

from .config import SUPPORTED_NETWORKS, ConfigError, NetworkConfig, resolve
from .ledger.rpc import LedgerRpc, RemoteCallError
from .ledger.session import CallOutcome, ContractHandle, Participant, Session, create_session
from .scenarios import SCENARIOS, Scenario, ScenarioContext, ScenarioResult, run_scenario, run_scenarios
from .wallet.keys import KeyFormatError, KeyPair, KeyStore, generate_key_pair, parse_key_pair
