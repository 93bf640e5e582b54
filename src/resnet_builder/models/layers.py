"""Framework-neutral layer descriptors emitted by the architecture builder.

Each descriptor records what a layer is (kind + hyperparameters), its dotted
module name and the shape it produces. Names follow torchvision's ResNet so a
graph maps one-to-one onto `torchvision.models.resnet*` state dicts:

    conv1, bn1, relu, pad, maxpool
    layer1.0.conv1 ... layer1.0.bn2, layer2.0.downsample.0, layer2.0.downsample.1
    avgpool, fc

Shapes are (channels, width, height). The spatial update after a convolution
or pooling layer is the usual floor((size + 2*pad - kernel) / stride) + 1.
"""
from dataclasses import dataclass
from typing import ClassVar, Dict, Optional, Tuple

from ..errors import InvalidShape
from .stages import BlockKind


def conv_out_size(size: int, kernel: int, stride: int, padding: int) -> int:
    """Output extent of a convolution/pooling window along one axis."""
    if stride < 1:
        raise InvalidShape(f'stride must be >= 1, got {stride}')
    return (size + 2 * padding - kernel) // stride + 1


@dataclass(frozen=True)
class RunningShape:
    """Activation shape threaded through construction."""
    channels: int
    width: int
    height: int

    def check(self, where: str) -> 'RunningShape':
        if self.channels <= 0 or self.width <= 0 or self.height <= 0:
            raise InvalidShape(
                f'{where}: shape collapsed to {self.channels}x{self.width}x{self.height}'
            )
        return self

    def window(self, channels: int, kernel: int, stride: int, padding: int,
               where: str) -> 'RunningShape':
        return RunningShape(
            channels,
            conv_out_size(self.width, kernel, stride, padding),
            conv_out_size(self.height, kernel, stride, padding),
        ).check(where)

    def padded(self, padding: int) -> 'RunningShape':
        return RunningShape(self.channels, self.width + 2 * padding,
                            self.height + 2 * padding)

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.channels, self.width, self.height)

    def __str__(self):
        return f'{self.channels}x{self.width}x{self.height}'


@dataclass(frozen=True)
class Layer:
    kind: ClassVar[str] = 'layer'

    def num_parameters(self) -> int:
        return 0

    def parameter_shapes(self) -> Dict[str, Tuple[int, ...]]:
        return {}

    def describe(self) -> str:
        return ''


@dataclass(frozen=True)
class Convolution(Layer):
    kind: ClassVar[str] = 'convolution'
    name: str
    in_channels: int
    out_channels: int
    kernel_size: int
    stride: int
    padding: int
    output_shape: RunningShape

    def num_parameters(self) -> int:
        return self.in_channels * self.out_channels * self.kernel_size ** 2

    def parameter_shapes(self):
        k = self.kernel_size
        return {f'{self.name}.weight': (self.out_channels, self.in_channels, k, k)}

    def describe(self):
        k = self.kernel_size
        return (f'{self.in_channels}->{self.out_channels}, {k}x{k}, '
                f'stride {self.stride}, pad {self.padding}')


@dataclass(frozen=True)
class BatchNorm(Layer):
    kind: ClassVar[str] = 'batch_norm'
    name: str
    num_features: int
    output_shape: RunningShape

    def num_parameters(self) -> int:
        return 2 * self.num_features

    def parameter_shapes(self):
        return {f'{self.name}.weight': (self.num_features,),
                f'{self.name}.bias': (self.num_features,)}

    def describe(self):
        return str(self.num_features)


@dataclass(frozen=True)
class Activation(Layer):
    kind: ClassVar[str] = 'activation'
    name: str
    output_shape: RunningShape
    function: str = 'relu'

    def describe(self):
        return self.function


@dataclass(frozen=True)
class Padding(Layer):
    """Explicit zero padding on every side."""
    kind: ClassVar[str] = 'padding'
    name: str
    padding: int
    output_shape: RunningShape

    def describe(self):
        return f'{self.padding} each side'


@dataclass(frozen=True)
class Pooling(Layer):
    """Windowed max pooling, or global average pooling when mode is adaptive_avg."""
    kind: ClassVar[str] = 'pooling'
    name: str
    mode: str
    output_shape: RunningShape
    kernel_size: Optional[int] = None
    stride: Optional[int] = None
    padding: int = 0

    def describe(self):
        if self.mode == 'adaptive_avg':
            return 'adaptive avg -> 1x1'
        k = self.kernel_size
        return f'{self.mode} {k}x{k}, stride {self.stride}, pad {self.padding}'


@dataclass(frozen=True)
class Linear(Layer):
    kind: ClassVar[str] = 'linear'
    name: str
    in_features: int
    out_features: int
    output_shape: RunningShape

    def num_parameters(self) -> int:
        return self.in_features * self.out_features + self.out_features

    def parameter_shapes(self):
        return {f'{self.name}.weight': (self.out_features, self.in_features),
                f'{self.name}.bias': (self.out_features,)}

    def describe(self):
        return f'{self.in_features}->{self.out_features}'


@dataclass(frozen=True)
class ResidualMerge(Layer):
    """One residual block: main branch + shortcut, summed, then `activation`.

    An empty `shortcut` is the identity.
    """
    kind: ClassVar[str] = 'residual_merge'
    name: str
    block: BlockKind
    stage: int
    index: int
    in_channels: int
    out_channels: int
    stride: int
    main: Tuple[Layer, ...]
    shortcut: Tuple[Layer, ...]
    output_shape: RunningShape
    activation: str = 'relu'

    @property
    def has_downsample(self) -> bool:
        return bool(self.shortcut)

    def num_parameters(self) -> int:
        return sum(l.num_parameters() for l in self.main + self.shortcut)

    def parameter_shapes(self):
        shapes = {}
        for l in self.main + self.shortcut:
            shapes.update(l.parameter_shapes())
        return shapes

    def describe(self):
        shortcut = 'downsample' if self.shortcut else 'identity'
        return (f'{self.block.value} {self.in_channels}->{self.out_channels}, '
                f'stride {self.stride}, {shortcut}')


__all__ = [
    'conv_out_size', 'RunningShape', 'Layer', 'Convolution', 'BatchNorm',
    'Activation', 'Padding', 'Pooling', 'Linear', 'ResidualMerge'
]
