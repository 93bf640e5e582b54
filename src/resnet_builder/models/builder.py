"""ResNet architecture builder.

Turns an `ArchitectureConfig` into a `LayerGraph`: the ordered list of layer
descriptors making up the network, with every intermediate shape resolved.
Construction is a single deterministic pass with no I/O; the running shape is
passed in and returned by every step rather than kept on an object, so two
builds from the same config always produce equal graphs.

ImageNet-sized walk-through (ResNet18, 3x224x224):
    conv1 7x7/2 pad 3            => 64x112x112
    pad 1                        => 64x114x114
    maxpool 3x3/2                => 64x56x56
    layer1 (2 basic, stride 1)   => 64x56x56
    layer2 (2 basic, stride 2)   => 128x28x28
    layer3 (2 basic, stride 2)   => 256x14x14
    layer4 (2 basic, stride 2)   => 512x7x7
    avgpool                      => 512x1x1
    fc 512 -> num_classes

The first block of a stage gets a 1x1 conv + BN projection shortcut whenever
its stride is not 1 or its input width differs from `channels * expansion`.
For basic-block networks that is stages 2-4; bottleneck networks also need
one in stage 1 (64 -> 256).
"""
import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from ..errors import InvalidShape
from .config import ArchitectureConfig, VersionLike
from .layers import (Activation, BatchNorm, Convolution, Layer, Linear, Padding,
                     Pooling, ResidualMerge, RunningShape)
from .stages import BlockKind, StageSpec, stage_specs

logger = logging.getLogger(__name__)

STEM_CHANNELS = 64


@dataclass(frozen=True)
class LayerGraph:
    """A fully resolved ResNet, ready to be instantiated by a framework."""
    config: ArchitectureConfig
    stages: Tuple[StageSpec, ...]
    layers: Tuple[Layer, ...]
    input_shape: RunningShape
    output_shape: RunningShape

    def __iter__(self) -> Iterator[Layer]:
        return iter(self.layers)

    def __len__(self):
        return len(self.layers)

    @property
    def block_kind(self) -> BlockKind:
        return self.stages[0].block

    @property
    def head(self) -> Optional[Linear]:
        last = self.layers[-1]
        return last if isinstance(last, Linear) else None

    def blocks(self) -> List[ResidualMerge]:
        return [l for l in self.layers if isinstance(l, ResidualMerge)]

    def stage_blocks(self, stage: int) -> List[ResidualMerge]:
        return [b for b in self.blocks() if b.stage == stage]

    def stage_block_counts(self) -> Tuple[int, ...]:
        return tuple(len(self.stage_blocks(i)) for i in range(len(self.stages)))

    def feature_shape(self) -> RunningShape:
        """Shape coming out of the last residual stage."""
        return self.blocks()[-1].output_shape

    def num_parameters(self) -> int:
        return sum(l.num_parameters() for l in self.layers)

    def parameter_shapes(self):
        shapes = {}
        for l in self.layers:
            shapes.update(l.parameter_shapes())
        return shapes


def _conv(name, shape, out_channels, kernel, stride, padding):
    out = shape.window(out_channels, kernel, stride, padding, name)
    layer = Convolution(name, shape.channels, out_channels, kernel, stride, padding, out)
    logger.debug('%s: %s => %s', name, layer.describe(), out)
    return layer, out


def build_stem(shape: RunningShape) -> Tuple[List[Layer], RunningShape]:
    """conv 7x7/2 -> BN -> ReLU -> zero pad 1 -> max pool 3x3/2."""
    conv, shape = _conv('conv1', shape, STEM_CHANNELS, 7, 2, 3)
    layers = [conv, BatchNorm('bn1', STEM_CHANNELS, shape), Activation('relu', shape)]
    shape = shape.padded(1)
    layers.append(Padding('pad', 1, shape))
    shape = shape.window(shape.channels, 3, 2, 0, 'maxpool')
    layers.append(Pooling('maxpool', 'max', shape, kernel_size=3, stride=2, padding=0))
    logger.debug('stem => %s', shape)
    return layers, shape


def _basic_main(prefix, shape, channels, stride):
    conv1, shape = _conv(f'{prefix}.conv1', shape, channels, 3, stride, 1)
    conv2, out = _conv(f'{prefix}.conv2', shape, channels, 3, 1, 1)
    return [
        conv1, BatchNorm(f'{prefix}.bn1', channels, shape), Activation(f'{prefix}.relu', shape),
        conv2, BatchNorm(f'{prefix}.bn2', channels, out),
    ], out


def _bottleneck_main(prefix, shape, channels, stride):
    width = channels * BlockKind.BOTTLENECK.expansion
    conv1, s1 = _conv(f'{prefix}.conv1', shape, channels, 1, 1, 0)
    conv2, s2 = _conv(f'{prefix}.conv2', s1, channels, 3, stride, 1)
    conv3, out = _conv(f'{prefix}.conv3', s2, width, 1, 1, 0)
    return [
        conv1, BatchNorm(f'{prefix}.bn1', channels, s1), Activation(f'{prefix}.relu', s1),
        conv2, BatchNorm(f'{prefix}.bn2', channels, s2), Activation(f'{prefix}.relu', s2),
        conv3, BatchNorm(f'{prefix}.bn3', width, out),
    ], out


_MAIN_BRANCH = {
    BlockKind.BASIC: _basic_main,
    BlockKind.BOTTLENECK: _bottleneck_main,
}


def build_block(kind: BlockKind, stage: int, index: int, shape: RunningShape,
                channels: int, stride: int) -> Tuple[ResidualMerge, RunningShape]:
    prefix = f'layer{stage + 1}.{index}'
    out_channels = channels * kind.expansion
    main, out = _MAIN_BRANCH[kind](prefix, shape, channels, stride)

    shortcut = ()
    if stride != 1 or shape.channels != out_channels:
        conv, down = _conv(f'{prefix}.downsample.0', shape, out_channels, 1, stride, 0)
        if down != out:
            raise InvalidShape(f'{prefix}: shortcut {down} does not match main branch {out}')
        shortcut = (conv, BatchNorm(f'{prefix}.downsample.1', out_channels, down))

    block = ResidualMerge(prefix, kind, stage, index, shape.channels, out_channels,
                          stride, tuple(main), shortcut, out)
    logger.debug('%s: %s => %s', prefix, block.describe(), out)
    return block, out


def build_stage(spec: StageSpec, stage: int,
                shape: RunningShape) -> Tuple[List[ResidualMerge], RunningShape]:
    blocks = []
    for index in range(spec.num_blocks):
        stride = spec.stride if index == 0 else 1
        block, shape = build_block(spec.block, stage, index, shape, spec.channels, stride)
        blocks.append(block)
    return blocks, shape


def build_head(shape: RunningShape, num_classes: int) -> Tuple[List[Layer], RunningShape]:
    if num_classes <= 0:
        raise InvalidShape(f'fc: num_classes must be positive, got {num_classes}')
    pooled = RunningShape(shape.channels, 1, 1)
    out = RunningShape(num_classes, 1, 1)
    return [
        Pooling('avgpool', 'adaptive_avg', pooled),
        Linear('fc', shape.channels, num_classes, out),
    ], out


def build_graph(config: ArchitectureConfig) -> LayerGraph:
    """Assemble the layer graph for `config`.

    Raises InvalidVersion for unsupported depths and InvalidShape as soon as a
    layer would produce a non-positive dimension.
    """
    stages = stage_specs(config.version)
    input_shape = RunningShape(*config.input_shape).check('input')

    layers, shape = build_stem(input_shape)
    for i, spec in enumerate(stages):
        blocks, shape = build_stage(spec, i, shape)
        layers.extend(blocks)
    if config.include_top:
        head, shape = build_head(shape, config.num_classes)
        layers.extend(head)

    graph = LayerGraph(config, stages, tuple(layers), input_shape, shape)
    logger.info('Built %s: %d blocks %s, input %s, output %s, %d params',
                config.name, len(graph.blocks()), graph.stage_block_counts(),
                input_shape, shape, graph.num_parameters())
    return graph


def build_resnet(channels: int = 3,
                 width: int = 224,
                 height: int = 224,
                 version: VersionLike = 18,
                 include_top: bool = True,
                 num_classes: int = 1000,
                 pretrained: bool = False) -> LayerGraph:
    config = ArchitectureConfig(version, channels, width, height, num_classes,
                                include_top, pretrained)
    return build_graph(config)


def build_resnet_from_shape(input_shape: Tuple[int, int, int], **kwargs) -> LayerGraph:
    channels, width, height = input_shape
    return build_resnet(channels, width, height, **kwargs)


__all__ = [
    'LayerGraph', 'build_graph', 'build_resnet', 'build_resnet_from_shape',
    'build_stem', 'build_stage', 'build_block', 'build_head'
]
