"""Version table for the published ResNet depths.

    version   blocks per stage   block
    18        2, 2, 2, 2         BasicBlock   (expansion 1)
    34        3, 4, 6, 3         BasicBlock   (expansion 1)
    50        3, 4, 6, 3         Bottleneck   (expansion 4)
    101       3, 4, 23, 3        Bottleneck   (expansion 4)
    152       3, 8, 36, 3        Bottleneck   (expansion 4)

Every network has four stages with 64 -> 128 -> 256 -> 512 channels. Stage 0
keeps the resolution coming out of the stem, stages 1-3 halve it (stride 2).
"""
import enum
from dataclasses import dataclass
from types import MappingProxyType
from typing import Tuple

from ..errors import InvalidVersion

STAGE_CHANNELS = (64, 128, 256, 512)
STAGE_STRIDES = (1, 2, 2, 2)


class BlockKind(enum.Enum):
    BASIC = 'basic'
    BOTTLENECK = 'bottleneck'

    @property
    def expansion(self) -> int:
        return 1 if self is BlockKind.BASIC else 4


@dataclass(frozen=True)
class StageSpec:
    """One group of residual blocks sharing a channel width."""
    block: BlockKind
    channels: int
    num_blocks: int
    stride: int

    @property
    def out_channels(self) -> int:
        return self.channels * self.block.expansion


RESNET_VERSIONS = MappingProxyType({
    18: ((2, 2, 2, 2), BlockKind.BASIC),
    34: ((3, 4, 6, 3), BlockKind.BASIC),
    50: ((3, 4, 6, 3), BlockKind.BOTTLENECK),
    101: ((3, 4, 23, 3), BlockKind.BOTTLENECK),
    152: ((3, 8, 36, 3), BlockKind.BOTTLENECK),
})


def _validate_table():
    for version, (counts, block) in RESNET_VERSIONS.items():
        if len(counts) != len(STAGE_CHANNELS) or min(counts) < 1:
            raise RuntimeError(f'bad block counts for resnet{version}: {counts}')
        if not isinstance(block, BlockKind):
            raise RuntimeError(f'bad block kind for resnet{version}: {block!r}')


_validate_table()


def supported_versions() -> Tuple[int, ...]:
    return tuple(sorted(RESNET_VERSIONS))


def stage_specs(version: int) -> Tuple[StageSpec, ...]:
    """Resolve a depth to its four stage descriptors."""
    try:
        counts, block = RESNET_VERSIONS[version]
    except (KeyError, TypeError):
        raise InvalidVersion(
            f'Unsupported ResNet version {version!r}. '
            f'Possible values are: {", ".join(map(str, supported_versions()))}'
        ) from None
    return tuple(
        StageSpec(block, channels, n, stride)
        for channels, n, stride in zip(STAGE_CHANNELS, counts, STAGE_STRIDES)
    )


__all__ = [
    'BlockKind', 'StageSpec', 'RESNET_VERSIONS', 'STAGE_CHANNELS',
    'STAGE_STRIDES', 'stage_specs', 'supported_versions'
]
