# tests/conftest.py

import pytest

from fakes import FakeManagementClient, make_source
from kontent_restore.config import ImportConfig, ManagementApiConfig
from kontent_restore.restore.models import ImportSource


@pytest.fixture
def source() -> ImportSource:
    return make_source()


@pytest.fixture
def fake_client() -> FakeManagementClient:
    return FakeManagementClient()


@pytest.fixture
def config() -> ImportConfig:
    return ImportConfig(management=ManagementApiConfig(project_id="project-1", api_key="secret"))
