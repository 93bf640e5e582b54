"""Architecture hyperparameters for a ResNet build."""
from dataclasses import asdict, dataclass
from typing import Tuple, Union

from ..errors import InvalidShape, InvalidVersion
from .stages import stage_specs

VersionLike = Union[int, str]
INTEGER_FIELDS = ('input_channels', 'input_width', 'input_height', 'num_classes')


def parse_version(version: VersionLike) -> int:
    """Normalise 50, '50' or 'resnet50' to 50 and check it is supported."""
    if isinstance(version, bool):
        raise InvalidVersion(f'Unsupported ResNet version {version!r}')
    if isinstance(version, str):
        text = version.strip().lower()
        if text.startswith('resnet'):
            text = text[len('resnet'):]
        if not text.isdecimal():
            raise InvalidVersion(f'Unsupported ResNet version {version!r}')
        try:
            version = int(text)
        except ValueError:
            raise InvalidVersion(f'Unsupported ResNet version {version!r}') from None
    stage_specs(version)
    return int(version)


@dataclass(frozen=True)
class ArchitectureConfig:
    version: int = 18
    input_channels: int = 3
    input_width: int = 224
    input_height: int = 224
    num_classes: int = 1000
    include_top: bool = True
    pretrained: bool = False

    def __post_init__(self):
        object.__setattr__(self, 'version', parse_version(self.version))
        for field in INTEGER_FIELDS:
            value = getattr(self, field)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidShape(f'{field} must be an integer, got {value!r}')

    @classmethod
    def from_shape(cls, input_shape: Tuple[int, int, int], **kwargs) -> 'ArchitectureConfig':
        channels, width, height = input_shape
        return cls(input_channels=channels, input_width=width,
                   input_height=height, **kwargs)

    @property
    def input_shape(self) -> Tuple[int, int, int]:
        return (self.input_channels, self.input_width, self.input_height)

    @property
    def name(self) -> str:
        return f'resnet{self.version}'

    def to_dict(self) -> dict:
        return asdict(self)


__all__ = ['ArchitectureConfig', 'parse_version', 'VersionLike']
