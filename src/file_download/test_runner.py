"""
Test harness bootstrap for the filter downloader suite

Runs pytest once, in a child process, against a fixed {code, tests} pair.
The run is guarded by max_block_duration: a suite that blocks longer is
assumed to be stuck in an infinite loop and is killed.
"""
import asyncio
import importlib.util
import os
import sys
import time
from dataclasses import dataclass
from dataclasses import asdict
from typing import Dict
from typing import Any
from typing import List
from typing import Optional

from ..core.config_manager import TestRunnerConfig
from ..core.config_manager import get_config_manager
from ..core.error_handler import FilterDownloadError
from ..core.error_handler import TestRunError
from ..core.error_handler import TestRunTimeoutError
from ..core.logging_config import get_filter_logger
from ..core.logging_config import get_logger

# pytest exit codes meaning the suite did not run to completion
_RUN_FAILURE_EXIT_CODES = {
    2: "run was interrupted",
    3: "hit an internal error",
    4: "was called with invalid arguments",
}


def _missing_modules(config: TestRunnerConfig) -> List[str]:
    """Modules the child interpreter needs that cannot be imported"""
    required = ["pytest"]
    if config.coverage:
        required.append("pytest_cov")
    return [name for name in required if importlib.util.find_spec(name) is None]


_started = False


@dataclass
class TestRunRequest:
    __test__ = False

    code: str
    tests: str


@dataclass
class TestRunReport:
    __test__ = False

    exit_code: int
    duration_ms: float
    command: List[str]
    code: str
    tests: str

    @property
    def passed(self) -> bool:
        return self.exit_code == 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_pytest_args(config: TestRunnerConfig, request: TestRunRequest) -> List[str]:
    """Translate the logging toggles into pytest command line options"""
    args = [request.tests]

    if config.tests:
        args.append("-v")

    args.append("--tb=long" if config.errors else "--tb=no")

    if config.assertions:
        args.append("-rA")
    elif config.global_summary:
        args.append("-rfE")
    else:
        args.append("-rN")

    if not config.summary:
        args.append("--no-summary")

    if config.coverage:
        args.append(f"--cov={request.code}")
        args.append("--cov-report=term-missing" if config.global_coverage else "--cov-report=term")

    return args


async def _stop(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        process.kill()
    await process.wait()


async def run_tests(request: Optional[TestRunRequest] = None,
                    config: Optional[TestRunnerConfig] = None) -> TestRunReport:
    """
    Run the suite once and report how it went.

    Test failures are part of the report (exit_code 1); TestRunError is raised
    only when pytest could not run the suite, TestRunTimeoutError when it
    blocked longer than max_block_duration.
    """
    config = config or get_config_manager().get_test_runner_config()
    request = request or TestRunRequest(code=config.code, tests=config.test_file)
    base_dir = config.base_dir or os.getcwd()
    logger = get_logger("test_runner")

    for label, path in (("code", request.code), ("tests", request.tests)):
        if not os.path.exists(os.path.join(base_dir, path)):
            raise TestRunError(
                f"{label} path does not exist: {path}",
                details={"base_dir": base_dir, label: path},
            )

    if config.testing:
        logger.info(f"Testing {request.code}")

    missing = _missing_modules(config)
    if missing:
        raise TestRunError(
            f"Cannot run the suite, not installed: {', '.join(missing)}",
            details={"missing": missing, "python": sys.executable},
        )

    timeout = config.max_block_duration / 1000
    command = [sys.executable, "-m", "pytest", *build_pytest_args(config, request)]
    details = {"command": command, "base_dir": base_dir}
    logger.debug(f"Running {' '.join(command)}")

    started = time.monotonic()
    try:
        process = await asyncio.create_subprocess_exec(*command, cwd=base_dir)
    except OSError as e:
        raise TestRunError(f"Could not start pytest: {e}", details=details) from e

    try:
        exit_code = await asyncio.wait_for(process.wait(), timeout=timeout)
    except asyncio.TimeoutError as e:
        await _stop(process)
        raise TestRunTimeoutError(
            f"Test run blocked for more than {config.max_block_duration} ms, "
            f"assuming an infinite loop",
            details=details,
        ) from e
    except asyncio.CancelledError:
        await _stop(process)
        raise

    duration_ms = round((time.monotonic() - started) * 1000, 2)

    if exit_code in _RUN_FAILURE_EXIT_CODES:
        raise TestRunError(
            f"pytest {_RUN_FAILURE_EXIT_CODES[exit_code]} (exit code {exit_code})",
            details={**details, "exit_code": exit_code},
        )

    return TestRunReport(
        exit_code=exit_code,
        duration_ms=duration_ms,
        command=command,
        code=request.code,
        tests=request.tests,
    )


def main() -> Optional[TestRunReport]:
    """Run the configured suite once; errors go to the test_runner log, never to the exit code"""
    global _started
    if _started:
        raise RuntimeError("Test runner bootstrap already ran in this process")
    _started = True

    runner_logger = get_filter_logger("test_runner")
    config = get_config_manager().get_test_runner_config()
    request = TestRunRequest(code=config.code, tests=config.test_file)
    runner_logger.log_service_start(extra_info={
        "code": request.code,
        "tests": request.tests,
        "max_block_duration": config.max_block_duration,
    })

    try:
        report = asyncio.run(run_tests(request, config))
    except FilterDownloadError as e:
        runner_logger.log_error_with_context(e, context={"code": request.code, "tests": request.tests})
        return None

    runner_logger.log_performance_metric(
        "test_run",
        report.duration_ms,
        success=report.passed,
        metadata={"exit_code": report.exit_code},
    )
    return report


def cli() -> None:
    main()


if __name__ == "__main__":
    cli()
