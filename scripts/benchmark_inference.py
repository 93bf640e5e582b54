#!/usr/bin/env python
"""ResNet inference micro-benchmark on synthetic input.

Features:
  * Any supported depth (resnet18|34|50|101|152) at any input shape
  * Auto / selectable device (cuda|xpu|mps|cpu)
  * Warmup + timed iteration loops with CUDA sync for accurate latency
  * Mixed precision (fp16/bf16) via autocast where supported
  * Reports mean / median / p95 latency, throughput, host RSS delta and CUDA peak memory

Example:
  python scripts/benchmark_inference.py --model resnet50 --batch-size 1 8 32 \
      --device cuda --precision fp16 --export-tsv results/resnet.tsv
"""
import argparse
import json
import os
import sys
from pathlib import Path
from typing import List, Dict, Any

import torch
from tabulate import tabulate

# Allow running from a checkout without installing the package
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / 'src'
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from resnet_builder.models import ArchitectureConfig, ResNetModel, supported_versions  # noqa: E402
from resnet_builder.utils.device import resolve_device, device_properties, autocast_context, synchronize  # noqa: E402
from resnet_builder.utils.metrics import TimingStats, Timer  # noqa: E402
from resnet_builder.utils.profiling import MemoryMonitor, count_parameters  # noqa: E402


def parse_args(argv=None):
    names = '|'.join(f'resnet{v}' for v in supported_versions())
    p = argparse.ArgumentParser(description="ResNet inference benchmark")
    p.add_argument("--model", default="resnet50", help=names)
    p.add_argument("--batch-size", "-b", nargs="+", type=int, default=[1], help="One or more batch sizes")
    p.add_argument("--input-shape", nargs=3, type=int, default=[3, 224, 224], metavar=("C", "W", "H"))
    p.add_argument("--num-classes", type=int, default=1000)
    p.add_argument("--no-top", dest="include_top", action="store_false")
    p.add_argument("--weights", default=None, help="Checkpoint to load before timing")
    p.add_argument("--device", default="auto", help="cuda|xpu|mps|cpu|auto")
    p.add_argument("--precision", default="fp32", help="fp32|fp16|bf16")
    p.add_argument("--warmup", type=int, default=10)
    p.add_argument("--iters", type=int, default=50, help="Timed iterations")
    p.add_argument("--export-tsv", default=None, help="Append/Write TSV results file")
    p.add_argument("--json", default=None, help="Write JSON result (single batch size only)")
    p.add_argument("--seed", type=int, default=42)
    p.add_argument("--compile", action="store_true", help="Use torch.compile if available (PyTorch 2.x)")
    return p.parse_args(argv)


def build_model(args) -> ResNetModel:
    config = ArchitectureConfig.from_shape(tuple(args.input_shape), version=args.model,
                                           num_classes=args.num_classes,
                                           include_top=args.include_top)
    handle = ResNetModel(config)
    if args.weights:
        handle.load_model(args.weights, strict=False)
    return handle


def benchmark(args) -> List[Dict[str, Any]]:
    torch.manual_seed(args.seed)
    device = resolve_device(args.device)
    handle = build_model(args)
    model = handle.get_model().to(device).eval()
    param_count = count_parameters(model)
    if args.compile and hasattr(torch, "compile"):
        model = torch.compile(model)  # type: ignore

    dev_props = device_properties(device)
    channels, width, height = args.input_shape
    results = []
    for bsz in args.batch_size:
        inp = torch.randn(bsz, channels, height, width, device=device)

        # Warmup
        with torch.no_grad():
            for _ in range(args.warmup):
                with autocast_context(device, args.precision):
                    _ = model(inp)
        synchronize(device)

        timings = []
        with MemoryMonitor(device) as mem, torch.no_grad():
            for _ in range(args.iters):
                synchronize(device)
                with Timer() as t:
                    with autocast_context(device, args.precision):
                        _ = model(inp)
                    synchronize(device)
                timings.append(t.dt)
        stats = TimingStats(timings)

        record = {
            "model": handle.config.name,
            "input_shape": "x".join(map(str, args.input_shape)),
            "batch_size": bsz,
            "precision": args.precision,
            "device": device,
            **stats.to_dict(),
            "throughput_sps_mean": stats.throughput(bsz),
            "params": param_count,
            **{f"dev_{k}": v for k, v in dev_props.items() if k != 'device'},
            **mem.result,
        }
        results.append(record)
        print_summary(record)
    return results


def print_summary(rec: Dict[str, Any]):
    display = {k: v for k, v in rec.items() if k not in {"host_mem_delta", "device_peak_mem"}}
    rows = [(k, f"{v}") for k, v in display.items()]
    print(tabulate(rows, headers=["Metric", "Value"], tablefmt="github"))
    if rec.get("device_peak_mem") is not None:
        print(f"Device peak memory bytes: {rec['device_peak_mem']}")
    print(f"Host RSS delta bytes: {rec.get('host_mem_delta')}")
    print("-" * 60)


def _ensure_parent(path: str):
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)


def append_tsv(path: str, records: List[Dict[str, Any]]):
    import csv
    fieldnames = sorted({k for r in records for k in r.keys()})
    exists = os.path.exists(path)
    _ensure_parent(path)
    with open(path, "a", newline="") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames, delimiter='\t')
        if not exists:
            w.writeheader()
        for r in records:
            w.writerow(r)


def write_json(path: str, record: Dict[str, Any]):
    _ensure_parent(path)
    with open(path, "w") as f:
        json.dump(record, f, indent=2)


def main(argv=None):
    args = parse_args(argv)
    recs = benchmark(args)
    if args.export_tsv:
        append_tsv(args.export_tsv, recs)
    if args.json:
        if len(recs) != 1:
            print("[warn] JSON export with multiple batch sizes will use the first record")
        write_json(args.json, recs[0])
    return recs


if __name__ == "__main__":
    main()
