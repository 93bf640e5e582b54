"""Reference training loop for ResNet graphs.

Pipeline Steps
--------------
1. Seed Python + Torch RNGs, enable deterministic CuDNN.
2. Select device (CUDA -> XPU -> MPS -> CPU).
3. Load dataset (CIFAR-10 resized to the configured input size, or FakeData).
4. Build the model through `ResNetModel` (optionally with ImageNet weights).
5. Train epoch: forward -> loss -> backward -> optimizer.step() (Adam, CE loss).
6. Eval epoch: forward-only with loss / accuracy.
7. Append one JSON record per epoch to `out`.
8. Save the best checkpoint (by eval accuracy) via `ResNetModel.save_model`.

Typical run
-----------
resnet-builder train --version 18 --dataset cifar10 --width 32 --height 32 \
    --num-classes 10 --epochs 5 --save-path checkpoints/resnet18_cifar10.pt
"""
import time, json, os, random, logging
from dataclasses import replace
from typing import Dict, List, Optional

import torch
from torch import nn, optim

from ..data import DATASETS, get_cifar10, get_fake
from ..models import ArchitectureConfig, ResNetModel
from ..utils.device import resolve_device
from ..utils.metrics import accuracy

logger = logging.getLogger(__name__)


def _run_epoch(model, loader, criterion, device, optimizer=None, limit_batches=None) -> Dict[str, float]:
    training = optimizer is not None
    model.train(training)
    total_loss, correct, total = 0.0, 0, 0
    start = time.time()
    with torch.set_grad_enabled(training):
        for bi, batch in enumerate(loader):
            if limit_batches is not None and bi >= limit_batches:
                break
            inputs, targets = batch[0].to(device), batch[1].to(device)
            if training:
                optimizer.zero_grad(set_to_none=True)
            outputs = model(inputs)
            loss = criterion(outputs, targets)
            if training:
                loss.backward()
                optimizer.step()
            total_loss += loss.item() * inputs.size(0)
            correct += round(accuracy(outputs, targets) * targets.size(0))
            total += targets.size(0)
    if total == 0:
        raise ValueError('loader produced no batches')
    return {
        'loss': total_loss / total,
        'acc': correct / total,
        'time': time.time() - start
    }


def train_epoch(model, loader, criterion, optimizer, device, limit_batches=None):
    return _run_epoch(model, loader, criterion, device, optimizer, limit_batches)


def eval_epoch(model, loader, criterion, device, limit_batches=None):
    return _run_epoch(model, loader, criterion, device, None, limit_batches)


def set_seed(seed: int):
    random.seed(seed)
    torch.manual_seed(seed)
    torch.cuda.manual_seed_all(seed)
    torch.backends.cudnn.deterministic = True
    torch.backends.cudnn.benchmark = False


def get_loaders(dataset: str, config: ArchitectureConfig, batch_size: int, data_dir: str):
    if dataset == 'cifar10':
        if config.input_channels != 3:
            raise ValueError('cifar10 images have 3 channels')
        return get_cifar10(data_dir, batch_size, config.input_width, config.input_height)
    if dataset == 'fake':
        return get_fake(batch_size, config.input_shape, config.num_classes)
    raise ValueError(f'dataset must be one of {sorted(DATASETS)}')


def run_training(config: ArchitectureConfig,
                 dataset: str = 'cifar10',
                 epochs: int = 1,
                 batch_size: int = 64,
                 data_dir: str = './data',
                 out: Optional[str] = 'results_resnet.jsonl',
                 save_path: Optional[str] = None,
                 lr: float = 1e-3,
                 seed: int = 42,
                 device: str = 'auto',
                 limit_batches: Optional[int] = None) -> List[dict]:
    if dataset not in DATASETS:
        raise ValueError(f'dataset must be one of {sorted(DATASETS)}')
    if not config.include_top:
        config = replace(config, include_top=True)
        logger.info('Training needs a classification head; enabling include_top')
    set_seed(seed)
    device = resolve_device(device)
    train_loader, test_loader = get_loaders(dataset, config, batch_size, data_dir)

    handle = ResNetModel(config)
    model = handle.get_model().to(device)
    criterion = nn.CrossEntropyLoss()
    optimizer = optim.Adam(model.parameters(), lr=lr)

    metrics = []
    best_acc = -1.0
    for epoch in range(1, epochs + 1):
        tr = train_epoch(model, train_loader, criterion, optimizer, device, limit_batches)
        ev = eval_epoch(model, test_loader, criterion, device, limit_batches)
        record = {'epoch': epoch, 'train': tr, 'eval': ev, 'model': config.name,
                  'dataset': dataset, 'device': str(device)}
        metrics.append(record)
        logger.info('epoch %d: train loss %.4f acc %.4f | eval loss %.4f acc %.4f',
                    epoch, tr['loss'], tr['acc'], ev['loss'], ev['acc'])
        if out:
            out_dir = os.path.dirname(out)
            if out_dir:
                os.makedirs(out_dir, exist_ok=True)
            with open(out, 'a') as f:
                f.write(json.dumps(record) + '\n')
        if save_path and ev['acc'] > best_acc:
            best_acc = ev['acc']
            handle.save_model(save_path)
            print(f"Saved new best checkpoint (acc={best_acc*100:.2f}%) -> {save_path}")
    return metrics


__all__ = ['train_epoch', 'eval_epoch', 'set_seed', 'get_loaders', 'run_training']
