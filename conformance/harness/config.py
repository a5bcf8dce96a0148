"""
Configuration management for the conformance test harness.
"""

import os
from dataclasses import dataclass, field
from typing import Dict

# Name of the in-process Python spec client; always the reference.
SPEC_CLIENT = "python-spec"


@dataclass
class ClientConfig:
    """Configuration for a single client endpoint."""
    name: str
    endpoint: str
    enabled: bool = True
    timeout: float = 30.0


@dataclass
class HarnessConfig:
    """Main configuration for the test harness."""
    # Remote implementations under test
    clients: Dict[str, ClientConfig] = field(default_factory=dict)

    # Paths
    vector_dir: str = "/vectors"
    result_dir: str = "/results"

    # Execution settings
    stop_on_first_failure: bool = False
    verbose: bool = False
    include_non_runnable: bool = False

    # Timeouts
    request_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "HarnessConfig":
        """Load configuration from environment variables."""
        config = cls()

        config.request_timeout = float(os.environ.get("REQUEST_TIMEOUT", "30"))

        candidate_endpoint = os.environ.get("CANDIDATE_ENDPOINT", "http://localhost:8081")
        config.clients = {
            "candidate": ClientConfig(
                name="Candidate",
                endpoint=candidate_endpoint,
                timeout=config.request_timeout,
            ),
        }

        # Optional second implementation, e.g. a devnet-backed contract adapter.
        contract_endpoint = os.environ.get("CONTRACT_ENDPOINT")
        if contract_endpoint:
            config.clients["contract"] = ClientConfig(
                name="Contract adapter",
                endpoint=contract_endpoint,
                timeout=config.request_timeout,
            )

        # Load paths
        config.vector_dir = os.environ.get("VECTOR_DIR", "/vectors")
        config.result_dir = os.environ.get("RESULT_DIR", "/results")

        # Load settings
        config.verbose = _env_flag("VERBOSE")
        config.stop_on_first_failure = _env_flag("STOP_ON_FIRST_FAILURE")
        config.include_non_runnable = _env_flag("INCLUDE_NON_RUNNABLE")

        return config

    def get_enabled_clients(self) -> Dict[str, ClientConfig]:
        """Get only enabled client configurations."""
        return {
            name: client
            for name, client in self.clients.items()
            if client.enabled
        }


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("true", "1", "yes")
