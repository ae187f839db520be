"""Shared pytest configuration and fixtures for the AutoCDN test suite."""

import sys
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from autocdn.core.config_models import ConfigurationRecord  # noqa: E402


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "subprocess: mark test as spawning a real child process"
    )


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Empty directory holding named configurations."""
    path = tmp_path / "configs"
    path.mkdir()
    return path


@pytest.fixture
def sample_record_dict() -> dict:
    """A stored record as it appears in YAML, with a few fields left out."""
    return {
        "cloudflare": {
            "api_key": "key",
            "email": "ops@example.com",
            "zone_id": "zone",
            "zone_name": "example.com",
            "domains": ["a.example.com", "b.example.com"],
            "domainipv6s": ["v6.example.com"],
        },
        "speed_test": {
            "routines": 0,
            "ping_times": 6,
            "min_delay": 0,
            "min_speed": 0,
            "max_loss_rate": 0,
            "test_type": "IPV4",
            "ipv4_file": "",
        },
    }


@pytest.fixture
def sample_record(sample_record_dict) -> ConfigurationRecord:
    return ConfigurationRecord.from_dict(sample_record_dict)
