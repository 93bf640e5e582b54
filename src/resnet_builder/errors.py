"""Errors raised while assembling a ResNet layer graph.

Both are construction-time failures: the builder either returns a complete
graph or raises one of these before anything is handed back.
"""


class ResNetBuildError(ValueError):
    """Base class for architecture construction failures."""


class InvalidVersion(ResNetBuildError):
    """The requested ResNet depth has no entry in the version table."""


class InvalidShape(ResNetBuildError):
    """A layer would produce a non-positive dimension."""


__all__ = ['ResNetBuildError', 'InvalidVersion', 'InvalidShape']
