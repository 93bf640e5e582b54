"""PyTorch instantiation of a ResNet `LayerGraph`.

Purpose:
    Turn the framework-neutral graph produced by `builder.build_graph` into a
    trainable `nn.Module`, optionally seeded with torchvision's ImageNet
    weights, and provide a small handle for saving / loading checkpoints.

Key behavior:
    * Module names mirror the descriptor names (conv1, bn1, layer1.0.conv1,
      layer2.0.downsample.0, fc ...), which are torchvision's names, so a
      torchvision ResNet state_dict loads without any key remapping.
    * The stem pads explicitly (ZeroPad2d(1)) and pools with padding 0. The
      stem ReLU makes every activation >= 0, so this matches torchvision's
      MaxPool2d(3, 2, padding=1) exactly.
    * With `include_top=False` the forward pass returns the last stage's
      feature map (N, C, H, W) instead of logits.
    * If `pretrained=True` the default torchvision weights for the depth are
      downloaded and loaded non-strictly. The classifier is dropped when the
      head is excluded or `num_classes != 1000`, the stem conv when the input
      is not 3-channel.

Example:
    from resnet_builder.models import ResNetModel
    handle = ResNetModel(version=50, num_classes=10)
    model = handle.get_model()
    handle.save_model('checkpoints/resnet50.pt')

Checkpoint format:
    torch.save({'model': 'resnet50', 'config': {...}, 'state_dict': ...})
    `load_model` accepts either this dict or a raw state_dict.
"""
import logging
import os
from dataclasses import replace
from typing import Dict, Optional, Tuple

import torch
from torch import nn
from torchvision import models as tv_models

from .builder import LayerGraph, build_graph
from .config import ArchitectureConfig
from .layers import (Activation, BatchNorm, Convolution, Layer, Linear, Padding,
                     Pooling, ResidualMerge)
from .stages import BlockKind

logger = logging.getLogger(__name__)

IMAGENET_CLASSES = 1000


def make_layer(layer: Layer) -> nn.Module:
    """Map a single (non-residual) descriptor to its torch module."""
    if isinstance(layer, Convolution):
        return nn.Conv2d(layer.in_channels, layer.out_channels, layer.kernel_size,
                         stride=layer.stride, padding=layer.padding, bias=False)
    if isinstance(layer, BatchNorm):
        return nn.BatchNorm2d(layer.num_features)
    if isinstance(layer, Activation):
        if layer.function != 'relu':
            raise ValueError(f'Unsupported activation {layer.function!r}')
        return nn.ReLU(inplace=True)
    if isinstance(layer, Padding):
        return nn.ZeroPad2d(layer.padding)
    if isinstance(layer, Pooling):
        if layer.mode == 'max':
            return nn.MaxPool2d(layer.kernel_size, layer.stride, layer.padding)
        if layer.mode == 'adaptive_avg':
            return nn.AdaptiveAvgPool2d((1, 1))
        raise ValueError(f'Unsupported pooling mode {layer.mode!r}')
    if isinstance(layer, Linear):
        return nn.Linear(layer.in_features, layer.out_features)
    raise TypeError(f'No torch module for {type(layer).__name__}')


def _local_name(layer: Layer) -> str:
    return layer.name.rsplit('.', 1)[-1]


class _ResidualBlock(nn.Module):
    def __init__(self, spec: ResidualMerge):
        super().__init__()
        for layer in spec.main:
            setattr(self, _local_name(layer), make_layer(layer))
        self.downsample = (nn.Sequential(*[make_layer(l) for l in spec.shortcut])
                           if spec.shortcut else None)
        self.stride = spec.stride

    def _shortcut(self, x: torch.Tensor) -> torch.Tensor:
        return x if self.downsample is None else self.downsample(x)


class BasicBlock(_ResidualBlock):
    """conv3x3 -> BN -> ReLU -> conv3x3 -> BN, + shortcut, ReLU."""
    expansion = BlockKind.BASIC.expansion

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        out = self.relu(self.bn1(self.conv1(x)))
        out = self.bn2(self.conv2(out))
        return self.relu(out + self._shortcut(x))


class Bottleneck(_ResidualBlock):
    """conv1x1 -> BN -> ReLU -> conv3x3 (stride) -> BN -> ReLU -> conv1x1 (x4) -> BN, + shortcut, ReLU."""
    expansion = BlockKind.BOTTLENECK.expansion

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        out = self.relu(self.bn1(self.conv1(x)))
        out = self.relu(self.bn2(self.conv2(out)))
        out = self.bn3(self.conv3(out))
        return self.relu(out + self._shortcut(x))


BLOCKS = {
    BlockKind.BASIC: BasicBlock,
    BlockKind.BOTTLENECK: Bottleneck,
}


class ResNet(nn.Module):
    """ResNet assembled from a `LayerGraph`."""

    def __init__(self, graph: LayerGraph):
        super().__init__()
        self.graph = graph
        self._order = []
        block_cls = BLOCKS[graph.block_kind]
        for layer in graph.layers:
            if isinstance(layer, ResidualMerge):
                stage = f'layer{layer.stage + 1}'
                if not hasattr(self, stage):
                    setattr(self, stage, nn.Sequential())
                    self._order.append(stage)
                getattr(self, stage).append(block_cls(layer))
            else:
                setattr(self, layer.name, make_layer(layer))
                self._order.append(layer.name)
        self.reset_parameters()

    def reset_parameters(self):
        # He initialisation for convs, identity BN.
        for m in self.modules():
            if isinstance(m, nn.Conv2d):
                nn.init.kaiming_normal_(m.weight, mode='fan_out', nonlinearity='relu')
            elif isinstance(m, nn.BatchNorm2d):
                nn.init.constant_(m.weight, 1)
                nn.init.constant_(m.bias, 0)

    @property
    def include_top(self) -> bool:
        return self.graph.head is not None

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        for name in self._order:
            module = getattr(self, name)
            if isinstance(module, nn.Linear):
                x = torch.flatten(x, 1)
            x = module(x)
        return x


def _fetch_pretrained_state_dict(version: int) -> Dict[str, torch.Tensor]:
    weights = tv_models.get_model_weights(f'resnet{version}').DEFAULT
    logger.info('Downloading pretrained weights %s', weights)
    return weights.get_state_dict(progress=True)


def load_pretrained(model: ResNet) -> Tuple[list, list]:
    """Load torchvision ImageNet weights into `model`, skipping incompatible tensors."""
    config = model.graph.config
    state_dict = dict(_fetch_pretrained_state_dict(config.version))
    if not model.include_top or config.num_classes != IMAGENET_CLASSES:
        state_dict = {k: v for k, v in state_dict.items() if not k.startswith('fc.')}
    if config.input_channels != 3:
        logger.warning('Input has %d channels; keeping random stem weights',
                       config.input_channels)
        state_dict.pop('conv1.weight', None)
    missing, unexpected = model.load_state_dict(state_dict, strict=False)
    logger.info('Loaded pretrained %s (missing=%d unexpected=%d)',
                config.name, len(missing), len(unexpected))
    return missing, unexpected


class ResNetModel:
    """Handle owning a configured ResNet, its layer graph and its module."""

    def __init__(self, config: Optional[ArchitectureConfig] = None, **overrides):
        if config is None:
            config = ArchitectureConfig(**overrides)
        elif overrides:
            config = replace(config, **overrides)
        self.config = config
        self.graph = build_graph(config)
        self.model = ResNet(self.graph)
        if config.pretrained:
            load_pretrained(self.model)

    def get_model(self) -> ResNet:
        return self.model

    def save_model(self, path: str):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        torch.save({'model': self.config.name,
                    'config': self.config.to_dict(),
                    'state_dict': self.model.state_dict()}, path)
        logger.info('Saved %s -> %s', self.config.name, path)

    def load_model(self, path: str, map_location='cpu', strict: bool = True):
        ckpt = torch.load(path, map_location=map_location)
        state_dict = ckpt.get('state_dict', ckpt)
        saved = ckpt.get('config')
        if saved is not None and saved.get('version') != self.config.version:
            logger.warning('Checkpoint %s was saved from resnet%s, loading into %s',
                           path, saved.get('version'), self.config.name)
        result = self.model.load_state_dict(state_dict, strict=strict)
        logger.info('Loaded weights from %s (missing=%d unexpected=%d)',
                    path, len(result.missing_keys), len(result.unexpected_keys))
        return result


def get_resnet(name: str = 'resnet18', pretrained: bool = False, num_classes: int = 10,
               include_top: bool = True,
               input_shape: Tuple[int, int, int] = (3, 224, 224)) -> nn.Module:
    """Return a ResNet `nn.Module` with adjustable num_classes."""
    config = ArchitectureConfig.from_shape(input_shape, version=name, num_classes=num_classes,
                                           include_top=include_top, pretrained=pretrained)
    return ResNetModel(config).get_model()


__all__ = [
    'ResNet', 'BasicBlock', 'Bottleneck', 'ResNetModel', 'get_resnet',
    'load_pretrained', 'make_layer'
]
