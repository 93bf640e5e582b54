"""ResNet builder package.

Assembles the published ResNet topologies (18/34/50/101/152) as a resolved
layer graph, instantiates them with PyTorch, and ships the small training and
inference-benchmark tooling used around them.
"""

__version__ = '0.1.0'

__all__ = []
