import pytest
import torch

from resnet_builder.models import ArchitectureConfig


@pytest.fixture(autouse=True)
def _seed():
    torch.manual_seed(0)


@pytest.fixture
def small_config():
    return ArchitectureConfig(version=18, input_width=32, input_height=32, num_classes=10)
