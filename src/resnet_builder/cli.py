"""Command line entry point.

    resnet-builder summary --version 50 --width 224 --height 224 --expand
    resnet-builder summary --config config/resnet50_cifar10.yaml
    resnet-builder train --version 18 --dataset fake --width 32 --height 32 --epochs 1
"""
import argparse
import logging
import sys

from .errors import ResNetBuildError
from .models import ArchitectureConfig, build_graph, supported_versions
from .utils.config import load_config
from .utils.summary import format_graph


def _add_architecture_args(p: argparse.ArgumentParser):
    p.add_argument('--config', default=None, help='YAML file with ArchitectureConfig fields')
    p.add_argument('--version', default=None,
                   help='|'.join(map(str, supported_versions())) + ' (or resnetNN)')
    p.add_argument('--channels', type=int, default=None, help='Input channels (default 3)')
    p.add_argument('--width', type=int, default=None, help='Input width (default 224)')
    p.add_argument('--height', type=int, default=None, help='Input height (default 224)')
    p.add_argument('--num-classes', type=int, default=None)
    p.add_argument('--no-top', dest='include_top', action='store_false', default=None,
                   help='Drop the average-pool + fc classification head')
    p.add_argument('--pretrained', action='store_true', default=None,
                   help='Load torchvision ImageNet weights')


def config_from_args(args) -> ArchitectureConfig:
    overrides = {
        'version': args.version,
        'input_channels': args.channels,
        'input_width': args.width,
        'input_height': args.height,
        'num_classes': args.num_classes,
        'include_top': args.include_top,
        'pretrained': args.pretrained,
    }
    if args.config:
        return load_config(args.config, **overrides)
    return ArchitectureConfig(**{k: v for k, v in overrides.items() if v is not None})


def parse_args(argv=None):
    ap = argparse.ArgumentParser(prog='resnet-builder', description='ResNet architecture builder')
    ap.add_argument('--verbose', '-v', action='count', default=0,
                    help='-v for INFO logging, -vv for DEBUG (every layer)')
    sub = ap.add_subparsers(dest='command', required=True)

    s = sub.add_parser('summary', help='Print the resolved layer table')
    _add_architecture_args(s)
    s.add_argument('--expand', action='store_true', help='List the layers inside every block')
    s.add_argument('--tablefmt', default='github', help='tabulate table format')

    t = sub.add_parser('train', help='Run the reference training loop')
    _add_architecture_args(t)
    t.add_argument('--dataset', default='cifar10', help='cifar10|fake')
    t.add_argument('--epochs', type=int, default=1)
    t.add_argument('--batch-size', type=int, default=64)
    t.add_argument('--data-dir', default='./data')
    t.add_argument('--out', default='results_resnet.jsonl')
    t.add_argument('--save-path', default=None)
    t.add_argument('--lr', type=float, default=1e-3)
    t.add_argument('--seed', type=int, default=42)
    t.add_argument('--device', default='auto', help='cuda|xpu|mps|cpu|auto')
    t.add_argument('--limit-batches', type=int, default=None)
    return ap.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    try:
        config = config_from_args(args)
        if args.command == 'summary':
            print(format_graph(build_graph(config), expand_blocks=args.expand,
                               tablefmt=args.tablefmt))
            return 0
    except (ResNetBuildError, FileNotFoundError, ValueError) as e:
        print(f'error: {e}', file=sys.stderr)
        return 2

    from .training.train import run_training
    run_training(config, dataset=args.dataset, epochs=args.epochs, batch_size=args.batch_size,
                 data_dir=args.data_dir, out=args.out, save_path=args.save_path, lr=args.lr,
                 seed=args.seed, device=args.device, limit_batches=args.limit_batches)
    return 0


if __name__ == '__main__':
    sys.exit(main())
