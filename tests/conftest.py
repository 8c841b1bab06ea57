"""Shared test fixtures for modbamcp tests."""

import pytest
from create_fixtures import create_empty_bam, create_mod_bam, create_not_a_bam

from modbamcp.config import ModBamConfig
from modbamcp.core import executor as _executor_module


@pytest.fixture(autouse=True)
def _reset_executor():
    """Shut down the module-level worker pool between tests."""
    yield
    _executor_module.shutdown_executor()


@pytest.fixture(scope="session")
def fixtures_dir(tmp_path_factory):
    """Session directory holding the generated BAM fixtures."""
    return tmp_path_factory.mktemp("fixtures")


@pytest.fixture(scope="session")
def mod_bam_path(fixtures_dir):
    """Indexed BAM with MM/ML tags (see create_fixtures.MOD_READS)."""
    return create_mod_bam(str(fixtures_dir))


@pytest.fixture(scope="session")
def empty_bam_path(fixtures_dir):
    """BAM with a header (chr1 only) and no reads."""
    return create_empty_bam(str(fixtures_dir))


@pytest.fixture(scope="session")
def not_a_bam_path(fixtures_dir):
    """Plain text file named like a BAM."""
    return create_not_a_bam(str(fixtures_dir))


@pytest.fixture
def config():
    """Default test config with a small worker pool."""
    return ModBamConfig(max_workers=2)
