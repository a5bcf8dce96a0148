#!/usr/bin/env python3
"""
Messenger Conformance Test Runner

Replays YAML vectors against the in-process Python spec (reference) and any
number of HTTP implementations, and reports divergences.

Client HTTP surface:
    POST /state/reset              -> {"success": bool}
    POST /state/load   <state>     -> {"success": bool, "state_digest": str}
    GET  /state/digest             -> {"state_digest": str}
    POST /call/execute <call>      -> {"success": bool, "error_code": int,
                                       "events": [...], "state_digest": str}
"""

import asyncio
import glob
import logging
import os
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiohttp
import click

ROOT = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT))

from messenger_spec.state_digest import compute_state_digest  # noqa: E402
from messenger_spec.state_transition import apply_call  # noqa: E402
from messenger_spec.types import LedgerState  # noqa: E402
from tools.fixtures_io import (  # noqa: E402
    call_from_json,
    event_to_json,
    state_from_json,
    state_to_json,
)
from tools.yaml_dump import load_yaml  # noqa: E402

from comparator import ResultComparator, ComparisonResult  # noqa: E402
from config import SPEC_CLIENT, HarnessConfig, ClientConfig  # noqa: E402
from reporter import ReportGenerator, SuiteResult, TestResult, ConformanceReport  # noqa: E402

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


class SpecClient:
    """In-process client backed by the Python spec. Always the reference."""

    def __init__(self) -> None:
        self.config = ClientConfig(name="Python spec", endpoint="in-process")
        self.state = LedgerState()

    async def connect(self) -> None:
        return None

    async def close(self) -> None:
        return None

    async def reset_state(self) -> bool:
        self.state = LedgerState()
        return True

    async def load_state(self, state: Dict[str, Any]) -> Optional[str]:
        try:
            self.state = state_from_json(state)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"[{self.config.name}] Load state failed: {e}")
            return None
        return compute_state_digest(state_to_json(self.state))

    async def get_state_digest(self) -> Optional[str]:
        return compute_state_digest(state_to_json(self.state))

    async def execute_call(self, call: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a single call."""
        try:
            parsed = call_from_json(call)
        except (KeyError, TypeError, ValueError) as e:
            return {"success": False, "error": f"undecodable call: {e}"}

        self.state, result = apply_call(self.state, parsed)
        return {
            "success": result.ok,
            "error_code": int(result.error.code) if result.error else 0,
            "events": [event_to_json(e) for e in result.events],
            "state_digest": compute_state_digest(state_to_json(self.state)),
        }


class ConformanceClient:
    """HTTP client for a single implementation."""

    def __init__(self, config: ClientConfig):
        self.config = config
        self.session: Optional[aiohttp.ClientSession] = None

    async def connect(self) -> None:
        """Initialize HTTP session."""
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        self.session = aiohttp.ClientSession(timeout=timeout)

    async def close(self) -> None:
        """Close HTTP session."""
        if self.session:
            await self.session.close()

    async def reset_state(self) -> bool:
        """Reset client to an empty ledger."""
        try:
            async with self.session.post(
                f"{self.config.endpoint}/state/reset"
            ) as resp:
                data = await resp.json()
                return data.get("success", False)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[{self.config.name}] Reset failed: {e}")
            return False

    async def load_state(self, state: Dict[str, Any]) -> Optional[str]:
        """
        Load state from JSON.

        Returns state digest on success, None on failure.
        """
        try:
            async with self.session.post(
                f"{self.config.endpoint}/state/load",
                json=state,
            ) as resp:
                data = await resp.json()
                if data.get("success"):
                    return data.get("state_digest")
                return None
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[{self.config.name}] Load state failed: {e}")
            return None

    async def get_state_digest(self) -> Optional[str]:
        """Get current state digest."""
        try:
            async with self.session.get(
                f"{self.config.endpoint}/state/digest"
            ) as resp:
                data = await resp.json()
                return data.get("state_digest")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[{self.config.name}] Get digest failed: {e}")
            return None

    async def execute_call(self, call: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a single call."""
        try:
            async with self.session.post(
                f"{self.config.endpoint}/call/execute",
                json=call,
            ) as resp:
                return await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[{self.config.name}] Execute call failed: {e}")
            return {"success": False, "error": str(e)}


class ConformanceHarness:
    """Main test harness for conformance testing."""

    def __init__(self, config: HarnessConfig):
        self.config = config
        self.clients: Dict[str, Any] = {SPEC_CLIENT: SpecClient()}
        self.comparator = ResultComparator(reference_client=SPEC_CLIENT)
        self.reporter = ReportGenerator(config.result_dir)

    async def setup(self) -> None:
        """Initialize all clients."""
        for name, client_config in self.config.get_enabled_clients().items():
            client = ConformanceClient(client_config)
            await client.connect()
            self.clients[name] = client
            logger.info(f"Connected to {client_config.name} at {client_config.endpoint}")

    async def teardown(self) -> None:
        """Close all client connections."""
        for client in self.clients.values():
            await client.close()

    async def reset_all(self) -> bool:
        """Reset all clients to an empty ledger."""
        results = await asyncio.gather(*[
            client.reset_state()
            for client in self.clients.values()
        ])
        return all(results)

    async def load_state_all(self, state: Dict[str, Any]) -> ComparisonResult:
        """Load identical state into all clients and verify digests match."""
        digests = {}
        for name, client in self.clients.items():
            digest = await client.load_state(state)
            if digest:
                digests[name] = digest
            else:
                logger.error(f"Failed to load state in {name}")

        return self.comparator.compare_state_digests(
            digests, "state_load"
        )

    async def execute_call_all(self, call: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
        """Execute a call on all clients concurrently."""
        names = list(self.clients.keys())
        outputs = await asyncio.gather(*[
            self.clients[name].execute_call(call) for name in names
        ])
        return dict(zip(names, outputs))

    def _failure(self, vector_name: str, start_time: float, error: str,
                 comparison: Optional[ComparisonResult] = None) -> TestResult:
        return TestResult(
            vector_name=vector_name,
            suite_name="",
            passed=False,
            execution_time_ms=(time.time() - start_time) * 1000,
            comparison=comparison,
            error=error,
        )

    async def run_vector(self, vector: Dict[str, Any]) -> TestResult:
        """Run a single test vector."""
        vector_name = vector.get("name", "unknown")
        start_time = time.time()

        try:
            if not await self.reset_all():
                return self._failure(vector_name, start_time, "Failed to reset clients")

            if vector.get("pre_state"):
                result = await self.load_state_all(vector["pre_state"])
                if result.has_divergences:
                    return self._failure(vector_name, start_time, "State load divergence", result)

            call = vector.get("call")
            if not call:
                # No call to execute - just a state load test
                return TestResult(
                    vector_name=vector_name,
                    suite_name="",
                    passed=True,
                    execution_time_ms=(time.time() - start_time) * 1000,
                )

            results = await self.execute_call_all(call)
            comparison = self.comparator.compare_results(results, vector_name)

            expected = vector.get("expected")
            if expected:
                against_vector = self.comparator.compare_expected(
                    expected, results[SPEC_CLIENT], SPEC_CLIENT, vector_name
                )
                comparison.divergences.extend(against_vector.divergences)
                comparison.success = not comparison.divergences

            return TestResult(
                vector_name=vector_name,
                suite_name="",
                passed=not comparison.has_divergences,
                execution_time_ms=(time.time() - start_time) * 1000,
                comparison=comparison,
            )

        except Exception as e:
            logger.exception(f"Error running vector {vector_name}")
            return self._failure(vector_name, start_time, str(e))

    async def run_suite(self, suite_path: str) -> SuiteResult:
        """Run a test suite from a YAML file."""
        suite_name = Path(suite_path).stem
        logger.info(f"Running suite: {suite_name}")

        start_time = time.time()

        suite = load_yaml(Path(suite_path)) or {}

        vectors = suite.get("test_vectors", [])
        test_results = []
        skipped = 0

        for vector in vectors:
            # Model vectors carry no call; state cases marked non-runnable do
            # not survive JSON.
            if "call" not in vector:
                skipped += 1
                continue
            if vector.get("runnable") is False and not self.config.include_non_runnable:
                skipped += 1
                continue

            result = await self.run_vector(vector)
            result.suite_name = suite_name
            test_results.append(result)

            status = "PASS" if result.passed else "FAIL"
            logger.info(f"  [{status}] {result.vector_name}")

            if not result.passed and self.config.stop_on_first_failure:
                break

        passed = sum(1 for r in test_results if r.passed)
        failed = sum(1 for r in test_results if not r.passed)

        return SuiteResult(
            suite_name=suite_name,
            total_tests=len(test_results),
            passed_tests=passed,
            failed_tests=failed,
            skipped_tests=skipped,
            execution_time_ms=(time.time() - start_time) * 1000,
            test_results=test_results,
        )

    async def run_all(self, vector_paths: List[str]) -> ConformanceReport:
        """Run all test suites."""
        start_time = time.time()

        suite_results = []
        for path in vector_paths:
            result = await self.run_suite(path)
            suite_results.append(result)

        report = self.reporter.generate_report(
            suite_results=suite_results,
            clients=list(self.clients.keys()),
            reference_client=self.comparator.reference_client,
            execution_time_ms=(time.time() - start_time) * 1000,
        )

        return report


def find_vector_files(vector_dir: str) -> List[str]:
    """Find all vector YAML files in directory."""
    patterns = [
        os.path.join(vector_dir, "**", "*.yaml"),
        os.path.join(vector_dir, "**", "*.yml"),
    ]

    files = []
    for pattern in patterns:
        files.extend(glob.glob(pattern, recursive=True))

    return sorted(files)


@click.command()
@click.option(
    "--vectors",
    default=None,
    help="Path to vectors directory or specific YAML file",
)
@click.option(
    "--candidate-endpoint",
    default=None,
    help="Endpoint URL of the implementation under test",
)
@click.option(
    "--spec-only",
    is_flag=True,
    help="Only replay vectors against the Python spec (no HTTP clients)",
)
@click.option(
    "--result-dir",
    default=None,
    help="Directory to write results",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.option(
    "--stop-on-failure",
    is_flag=True,
    help="Stop on first test failure",
)
def main(
    vectors: Optional[str],
    candidate_endpoint: Optional[str],
    spec_only: bool,
    result_dir: Optional[str],
    verbose: bool,
    stop_on_failure: bool,
) -> None:
    """Run Messenger conformance tests."""

    # Load config from environment, then override with CLI args
    config = HarnessConfig.from_env()

    if candidate_endpoint:
        config.clients["candidate"].endpoint = candidate_endpoint
    if spec_only:
        config.clients = {}
    if result_dir:
        config.result_dir = result_dir
    if verbose:
        config.verbose = True
        logging.getLogger().setLevel(logging.DEBUG)
    if stop_on_failure:
        config.stop_on_first_failure = True

    # Find vector files
    vector_dir = vectors or config.vector_dir
    if os.path.isfile(vector_dir):
        vector_files = [vector_dir]
    else:
        vector_files = find_vector_files(vector_dir)

    if not vector_files:
        logger.error(f"No vector files found in {vector_dir}")
        sys.exit(1)

    logger.info(f"Found {len(vector_files)} vector files")

    async def run() -> int:
        harness = ConformanceHarness(config)

        try:
            await harness.setup()
            report = await harness.run_all(vector_files)

            harness.reporter.write_json_report(report)
            harness.reporter.write_summary(report)
            harness.reporter.print_summary(report)

            return 0 if report.total_failed == 0 else 1

        finally:
            await harness.teardown()

    exit_code = asyncio.run(run())
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
