"""
Benchmark harness for the Huffman codec.

Encodes and decodes synthetic datasets of several byte distributions and
sizes, repeated a few times each, and records timing and size figures.

Outputs (in --outdir):
  - metrics.csv     (one row per run)
  - summary.csv     (mean/stdev per dataset and size)
  - *.png           (charts, unless --no_plots)

How to run:
  python experiments.py --outdir results --runs 5
  python experiments.py --outdir results --runs 3 --size_kb 256 --max_kb 4096
  python experiments.py --generators uniform256,zipf128,single_symbol --no_plots
"""

from __future__ import annotations

import argparse
import bisect
import csv
import logging
import random
import statistics
import time
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt

from codec import decode_bytes, encode_bytes

logger = logging.getLogger(__name__)


# Timing

def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_ms(ns: int) -> float:
    return ns / 1_000_000.0


# Synthetic dataset generators

def _sample_by_weights(size: int, symbols: List[int], weights: List[float], rng: random.Random) -> bytes:
    cdf: List[float] = []
    acc = 0.0
    for w in weights:
        acc += w
        cdf.append(acc)
    top = cdf[-1]
    last = len(symbols) - 1
    return bytes(symbols[min(bisect.bisect_left(cdf, rng.random() * top), last)] for _ in range(size))

def gen_uniform(size: int, alphabet: int = 256, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    return bytes(rng.randrange(0, alphabet) for _ in range(size))

def gen_repetitive(size: int, dominant: int = ord('A'), dom_frac: float = 0.90, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    others = [i for i in range(256) if i != dominant]
    return bytes(dominant if rng.random() < dom_frac else rng.choice(others) for _ in range(size))

def gen_zipf_like(size: int, alphabet: int = 128, s: float = 1.2, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    weights = [1.0 / ((i + 1) ** s) for i in range(alphabet)]
    return _sample_by_weights(size, list(range(alphabet)), weights, rng)

def gen_english_like(size: int, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    chars = " etaoinshrdlcumwfgypbvkjxqETAOINSHRDLCUMWFGYPBVKJXQ\n"
    weights = []
    for ch in chars:
        if ch == ' ':
            weights.append(13.0)
        elif ch == '\n':
            weights.append(1.5)
        elif ch.lower() in "etaoinshrdlu":
            weights.append(6.0)
        elif ch.lower() in "cmfwgypbvk":
            weights.append(2.5)
        else:
            weights.append(1.2)
    return _sample_by_weights(size, [ord(ch) for ch in chars], weights, rng)

def gen_single_symbol(size: int, symbol: int = ord('A')) -> bytes:
    return bytes([symbol]) * size

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], bytes]] = {
    "uniform256": lambda size, seed: gen_uniform(size, alphabet=256, seed=seed),
    "uniform128": lambda size, seed: gen_uniform(size, alphabet=128, seed=seed),
    "zipf128": lambda size, seed: gen_zipf_like(size, alphabet=128, s=1.2, seed=seed),
    "repetitive90": lambda size, seed: gen_repetitive(size, dom_frac=0.90, seed=seed),
    "repetitive99": lambda size, seed: gen_repetitive(size, dom_frac=0.99, seed=seed),
    "english_like": lambda size, seed: gen_english_like(size, seed=seed),
    "single_symbol": lambda size, seed: gen_single_symbol(size),
}

def generate_dataset(name: str, size_bytes: int, seed: int) -> Tuple[str, bytes]:
    """
    Unknown dataset names fall back to uniform256 (with a marked name)
    so one typo does not abort a long run
    """
    fn = GENERATOR_REGISTRY.get(name)
    if fn is None:
        logger.warning("unknown generator %r, using uniform256", name)
        return f"{name}_fallback_uniform256", gen_uniform(size_bytes, alphabet=256, seed=seed)
    return name, fn(size_bytes, seed)


# Experiment runner

@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    file_size_bytes: int
    run_id: int
    unique_symbols: int

    encode_ms: float
    decode_ms: float
    total_ms: float

    compressed_bytes: int
    valid_bits_in_last_byte: int
    compression_ratio: float
    reduction_percent: float

    correctness_ok: int  # 1 or 0


def run_one(data: bytes) -> MetricRow:
    t0 = now_ns()
    packed = encode_bytes(data)
    t1 = now_ns()
    decoded = decode_bytes(packed)
    t2 = now_ns()

    encode_ms = ns_to_ms(t1 - t0)
    decode_ms = ns_to_ms(t2 - t1)
    ratio = len(packed) / max(1, len(data))

    return MetricRow(
        exp_name="",
        dataset_name="",
        file_size_bytes=len(data),
        run_id=0,
        unique_symbols=packed[1] + 1,
        encode_ms=encode_ms,
        decode_ms=decode_ms,
        total_ms=encode_ms + decode_ms,
        compressed_bytes=len(packed),
        valid_bits_in_last_byte=packed[0],
        compression_ratio=ratio,
        reduction_percent=100.0 * (1.0 - ratio),
        correctness_ok=1 if decoded == data else 0,
    )


def write_csv(path: Path, rows: List[MetricRow]) -> None:
    names = [f.name for f in fields(MetricRow)]
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=names)
        w.writeheader()
        for r in rows:
            w.writerow({k: getattr(r, k) for k in names})


def mean_stdev(vals: List[float]) -> Tuple[float, float]:
    if len(vals) == 1:
        return vals[0], 0.0
    return statistics.mean(vals), statistics.stdev(vals)


def group_summary(rows: List[MetricRow], out_path: Path) -> None:
    """
    Group by exp_name, dataset_name, file_size_bytes and compute mean/stdev
    """
    key_to: Dict[Tuple[str, str, int], List[MetricRow]] = {}
    for r in rows:
        key_to.setdefault((r.exp_name, r.dataset_name, r.file_size_bytes), []).append(r)

    measured = ["compression_ratio", "encode_ms", "decode_ms", "total_ms"]
    summary_fields = ["exp_name", "dataset_name", "file_size_bytes", "n_runs"]
    for m in measured:
        summary_fields += [f"{m}_mean", f"{m}_stdev"]
    summary_fields.append("correctness_ok_rate")

    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=summary_fields)
        w.writeheader()
        for (exp_name, dataset_name, size_b), items in sorted(key_to.items()):
            row = {
                "exp_name": exp_name,
                "dataset_name": dataset_name,
                "file_size_bytes": size_b,
                "n_runs": len(items),
                "correctness_ok_rate": sum(x.correctness_ok for x in items) / len(items),
            }
            for m in measured:
                row[f"{m}_mean"], row[f"{m}_stdev"] = mean_stdev([getattr(x, m) for x in items])
            w.writerow(row)


# Plotting

def plot_distributions(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "distribution"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    x = list(range(len(datasets)))
    y = [statistics.mean(r.compression_ratio for r in exp_rows if r.dataset_name == d) for d in datasets]

    plt.figure()
    plt.bar(x, y)
    plt.axhline(1.0, color="gray", linestyle="--")
    plt.xticks(x, datasets, rotation=20, ha="right")
    plt.ylabel("Compressed Bytes / Original Bytes")
    plt.title("Compression Ratio by Distribution")
    plt.tight_layout()
    plt.savefig(outdir / "compression_ratio.png", dpi=200)
    plt.close()


def plot_size_scaling(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "size_scaling"]
    if not exp_rows:
        return

    for field, label, fname in (("encode_ms", "Encode Time (ms)", "encode_time.png"),
                                ("decode_ms", "Decode Time (ms)", "decode_time.png")):
        plt.figure()
        for dist in sorted(set(r.dataset_name for r in exp_rows)):
            dist_rows = [r for r in exp_rows if r.dataset_name == dist]
            sizes = sorted(set(r.file_size_bytes for r in dist_rows))
            y = [statistics.mean(getattr(r, field) for r in dist_rows if r.file_size_bytes == s) for s in sizes]
            plt.plot(sizes, y, marker="o", label=dist)
        plt.xlabel("File Size (bytes)")
        plt.ylabel(label)
        plt.title(f"{label.split(' (')[0]} vs Size")
        plt.legend()
        plt.tight_layout()
        plt.savefig(outdir / fname, dpi=200)
        plt.close()


# Main

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]

def size_steps(min_bytes: int, max_bytes: int) -> List[int]:
    sizes: List[int] = []
    s = min_bytes
    while s <= max_bytes:
        sizes.append(s)
        s *= 2
    return sizes

def run_experiments(generators: List[str], runs: int, seed: int, size_kb: int, min_kb: int, max_kb: int) -> List[MetricRow]:
    rows: List[MetricRow] = []

    # distributions at a fixed size
    fixed_size = max(1, size_kb) * 1024
    for gen_name in generators:
        for run_id in range(1, runs + 1):
            dataset_name, data = generate_dataset(gen_name, fixed_size, seed + run_id)
            row = run_one(data)
            row.exp_name = "distribution"
            row.dataset_name = dataset_name
            row.run_id = run_id
            rows.append(row)

    # size scaling, powers of two
    for gen_name in generators:
        for size_b in size_steps(max(1, min_kb) * 1024, max(1, max_kb) * 1024):
            for run_id in range(1, runs + 1):
                dataset_name, data = generate_dataset(gen_name, size_b, seed + 10_000 + size_b + run_id)
                row = run_one(data)
                row.exp_name = "size_scaling"
                row.dataset_name = dataset_name
                row.run_id = run_id
                rows.append(row)

    return rows

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Benchmark the Huffman codec on synthetic data")
    ap.add_argument("--outdir", type=str, default="results", help="Output directory for CSV and plots")
    ap.add_argument("--runs", type=int, default=3, help="Repetitions per configuration")
    ap.add_argument("--seed", type=int, default=123, help="Base random seed")
    ap.add_argument("--size_kb", type=int, default=64, help="Fixed dataset size in KB for the distribution runs")
    ap.add_argument("--min_kb", type=int, default=4, help="Smallest size in KB for the scaling runs")
    ap.add_argument("--max_kb", type=int, default=256, help="Largest size in KB for the scaling runs")
    ap.add_argument("--generators", type=str, default="uniform256,zipf128,repetitive90,english_like",
                    help="Comma-separated dataset generator names")
    ap.add_argument("--no_plots", action="store_true", help="Skip chart rendering")
    args = ap.parse_args(argv)

    outdir = Path(args.outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    rows = run_experiments(parse_csv_list(args.generators), max(1, args.runs), args.seed,
                           args.size_kb, args.min_kb, args.max_kb)

    metrics_csv = outdir / "metrics.csv"
    summary_csv = outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)

    if not args.no_plots:
        plot_distributions(rows, outdir)
        plot_size_scaling(rows, outdir)

    ok_rate = sum(r.correctness_ok for r in rows) / max(1, len(rows))
    print(f"Wrote {len(rows)} rows to {metrics_csv}")
    print(f"Wrote grouped summary to {summary_csv}")
    print(f"Correctness rate across all runs: {ok_rate:.3f}")
    if not args.no_plots:
        print("Charts saved in:", outdir.resolve())
    return 0 if ok_rate == 1.0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
