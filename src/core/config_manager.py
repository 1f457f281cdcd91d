import os
import yaml
from typing import Dict, Any, Optional, List, Union
from pathlib import Path
import logging
from dataclasses import dataclass, field, fields


logger = logging.getLogger(__name__)


@dataclass
class DownloadConfig:
    """Settings for remote filter file retrieval"""
    expected_content_type: str = "text/plain"
    # 0 is what non-network transports report for a successful read
    accepted_statuses: List[int] = field(default_factory=lambda: [200, 0])
    request_headers: Dict[str, str] = field(default_factory=lambda: {"Pragma": "no-cache"})
    # None keeps the aiohttp default
    timeout: Optional[float] = None


@dataclass
class TestRunnerConfig:
    """Settings for the filter-downloader test harness"""
    __test__ = False

    # log assertions overview
    assertions: bool = False
    # log expected and actual values for failed tests
    errors: bool = True
    # log tests overview
    tests: bool = False
    # log summary
    summary: bool = True
    # log global summary (all files)
    global_summary: bool = True
    # log coverage
    coverage: bool = True
    # log global coverage (all files)
    global_coverage: bool = True
    # log currently testing code file
    testing: bool = False
    # max ms the suite may block before it is treated as an infinite loop
    max_block_duration: int = 50000
    code: str = "./src/filter_downloader"
    test_file: str = "./tests/test_filter_downloader.py"
    base_dir: Optional[str] = None


def _check_type(cls, name: str, value: Any, expected) -> None:
    """Raise TypeError unless value matches the annotated field type"""
    if getattr(expected, "__origin__", None) is Union:
        if value is None:
            return
        expected = expected.__args__[0]

    origin = getattr(expected, "__origin__", None)
    if origin is not None:
        ok = isinstance(value, origin)
    elif isinstance(value, bool):
        # bool is an int subclass; a YAML "yes" is not a number
        ok = expected is bool
    elif expected is float:
        ok = isinstance(value, (int, float))
    else:
        ok = isinstance(value, expected)

    if not ok:
        raise TypeError(
            f"{cls.__name__}.{name} must be {getattr(expected, '__name__', expected)}, "
            f"got {type(value).__name__} {value!r}"
        )


def _from_mapping(cls, data: Optional[Dict[str, Any]]):
    """Build a config dataclass, warning about unknown keys and rejecting mistyped values"""
    data = data or {}
    known = {f.name: f.type for f in fields(cls)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        logger.warning(f"Ignoring unknown {cls.__name__} keys: {unknown}")
    for name, value in data.items():
        if name in known:
            _check_type(cls, name, value, known[name])
    return cls(**{k: v for k, v in data.items() if k in known})


class ConfigurationManager:
    """Loads download.yaml and test_runner.yaml from the config directory"""

    def __init__(self, config_dir: str = None):
        self.config_dir = Path(config_dir or os.getenv("CONFIG_DIR", "config"))
        self.download_config = DownloadConfig()
        self.test_runner_config = TestRunnerConfig()
        self._load_configurations()
        self._apply_env_overrides()

    def _read_yaml(self, name: str) -> Optional[Dict[str, Any]]:
        config_file = self.config_dir / name
        if not config_file.exists():
            return None
        with open(config_file, 'r', encoding='utf-8') as f:
            loaded = yaml.safe_load(f)
        if loaded is not None and not isinstance(loaded, dict):
            raise ValueError(f"{config_file} must contain a mapping")
        return loaded

    def _load_configurations(self):
        """Load all configuration files, falling back to defaults per file"""
        try:
            self.download_config = _from_mapping(DownloadConfig, self._read_yaml("download.yaml"))
        except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
            logger.error(f"Error loading download configuration: {e}")
            self.download_config = DownloadConfig()

        try:
            self.test_runner_config = _from_mapping(TestRunnerConfig, self._read_yaml("test_runner.yaml"))
        except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
            logger.error(f"Error loading test runner configuration: {e}")
            self.test_runner_config = TestRunnerConfig()

        logger.debug(f"Loaded configuration from {self.config_dir}")

    def _apply_env_overrides(self):
        runner = self.test_runner_config
        runner.code = os.getenv("TEST_RUNNER_CODE", runner.code)
        runner.test_file = os.getenv("TEST_RUNNER_TESTS", runner.test_file)

        max_block = os.getenv("TEST_RUNNER_MAX_BLOCK_MS")
        if max_block:
            try:
                runner.max_block_duration = int(max_block)
            except ValueError:
                logger.warning(f"Ignoring non-integer TEST_RUNNER_MAX_BLOCK_MS={max_block!r}")

    def get_download_config(self) -> DownloadConfig:
        return self.download_config

    def get_test_runner_config(self) -> TestRunnerConfig:
        return self.test_runner_config


_config_manager: Optional[ConfigurationManager] = None


def get_config_manager() -> ConfigurationManager:
    """Process-wide configuration manager, created on first use"""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigurationManager()
    return _config_manager
