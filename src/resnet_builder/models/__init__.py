"""ResNet architecture builder and its PyTorch instantiation.

`build_graph` / `build_resnet` are pure and framework-neutral; `ResNetModel`
and `get_resnet` turn the resulting graph into an `nn.Module`.
"""

from .stages import BlockKind, StageSpec, RESNET_VERSIONS, stage_specs, supported_versions
from .config import ArchitectureConfig, parse_version
from .layers import RunningShape, conv_out_size
from .builder import LayerGraph, build_graph, build_resnet, build_resnet_from_shape
from .resnet import ResNet, ResNetModel, get_resnet, load_pretrained

__all__ = [
    'BlockKind', 'StageSpec', 'RESNET_VERSIONS', 'stage_specs', 'supported_versions',
    'ArchitectureConfig', 'parse_version', 'RunningShape', 'conv_out_size',
    'LayerGraph', 'build_graph', 'build_resnet', 'build_resnet_from_shape',
    'ResNet', 'ResNetModel', 'get_resnet', 'load_pretrained'
]
