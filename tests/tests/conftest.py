import os
import sys

import pytest

project_root_dir = os.path.abspath(os.path.join(__file__, "../" * 3))
sys.path.insert(0, project_root_dir)

from config import Config, HarnessConfig

from src.redis.cases import CaseContext
from src.util import container_manager

from tests.data_generators import DataGenerator
from tests.fake_docker import FakeDocker


############ Test-scoped fixtures (configs) ############
@pytest.fixture
def data_generator():
    return DataGenerator()


@pytest.fixture
def config(data_generator: DataGenerator) -> Config:
    return data_generator.configs.config()


@pytest.fixture
def harness(data_generator: DataGenerator) -> HarnessConfig:
    return data_generator.configs.harness()


############ Test-scoped fixtures (fake container runtime) ############
@pytest.fixture
def fake_docker(monkeypatch: pytest.MonkeyPatch) -> FakeDocker:
    """
    Replaces `subprocess.run` used by the container manager
    with a scripted fake `docker` CLI.
    """
    fake = FakeDocker(version="7.2.4")
    monkeypatch.setattr(container_manager.subprocess, "run", fake)
    return fake


@pytest.fixture
def cid_dir(tmp_path):
    path = tmp_path / "cid"
    path.mkdir()
    return path


@pytest.fixture
def case_context(harness: HarnessConfig, config: Config, cid_dir, tmp_path) -> CaseContext:
    work_dir = tmp_path / "work"
    work_dir.mkdir()
    return CaseContext(harness, config, cid_dir, work_dir)
