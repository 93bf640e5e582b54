"""Dataset loaders for the training loop and benchmarks.

Images are resized to the configured input width/height so any ResNet input
shape can be trained on CIFAR-10. `get_fake` uses torchvision's FakeData for
smoke runs that must not touch the network or disk.
"""
from typing import Tuple

from torch.utils.data import DataLoader
from torchvision import datasets, transforms

CIFAR10_MEAN = (0.4914, 0.4822, 0.4465)
CIFAR10_STD = (0.2470, 0.2435, 0.2616)


def _loaders(train_set, test_set, batch_size: int, num_workers: int) -> Tuple[DataLoader, DataLoader]:
    train_loader = DataLoader(train_set, batch_size=batch_size, shuffle=True,
                              num_workers=num_workers)
    test_loader = DataLoader(test_set, batch_size=batch_size, shuffle=False,
                             num_workers=num_workers)
    return train_loader, test_loader


def get_cifar10(data_dir: str, batch_size: int, width: int = 32, height: int = 32,
                num_workers: int = 2) -> Tuple[DataLoader, DataLoader]:
    tf = transforms.Compose([
        transforms.Resize((height, width)),
        transforms.ToTensor(),
        transforms.Normalize(CIFAR10_MEAN, CIFAR10_STD),
    ])
    train_set = datasets.CIFAR10(data_dir, train=True, download=True, transform=tf)
    test_set = datasets.CIFAR10(data_dir, train=False, download=True, transform=tf)
    return _loaders(train_set, test_set, batch_size, num_workers)


def get_fake(batch_size: int, image_shape: Tuple[int, int, int] = (3, 32, 32),
             num_classes: int = 10, train_size: int = 64, test_size: int = 16,
             num_workers: int = 0) -> Tuple[DataLoader, DataLoader]:
    """Random images; `image_shape` is (channels, width, height)."""
    channels, width, height = image_shape
    tf = transforms.ToTensor()
    train_set = datasets.FakeData(train_size, (channels, height, width), num_classes,
                                  transform=tf, random_offset=0)
    test_set = datasets.FakeData(test_size, (channels, height, width), num_classes,
                                 transform=tf, random_offset=train_size)
    return _loaders(train_set, test_set, batch_size, num_workers)


DATASETS = ('cifar10', 'fake')

__all__ = ['get_cifar10', 'get_fake', 'DATASETS']
