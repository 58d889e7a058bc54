"""
Huffman code tree experiments: table lookup vs tree search

Runs the library end to end over synthetic datasets, with repeated runs,
and checks that every run decodes back to its input

Pipelines:
  table   heap construction + precomputed symbol -> code table for encoding
  search  sort-baseline construction + depth-first tree search per symbol

Outputs (in --outdir):
  - metrics.csv     (raw row per run per configuration)
  - summary.csv     (grouped mean/stdev)
  - *.png           (charts)

How to run:
  python experiments.py --outdir results --runs 5
  python experiments.py --outdir results --runs 3 --exp1_size_kb 256 --exp2_max_kb 2048
  python experiments.py --demo "abracadabra"
"""

from __future__ import annotations

import argparse
import csv
import random
import statistics
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import matplotlib.pyplot as plt

from bitpack import pack_bits, render_bits, unpack_bits
from frequency import compute_frequencies, entropy
from huffman import CodeTree, HuffmanError

PIPELINES = ("table", "search")


# Utilities

def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_ms(ns: int) -> float:
    return ns / 1_000_000.0

def safe_mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def demo(text: str) -> Tuple[str, str]:
    """
    Encode `text`, then decode it again with the same tree
    Returns (encoded bits as 0/1 text, decoded text)
    """
    tree = CodeTree.from_sequence(text)
    bits = tree.encode(text)
    return render_bits(bits), "".join(tree.decode(bits))


# Synthetic dataset generators

def _sample_cdf(rng: random.Random, weights: Sequence[float], size: int) -> List[int]:
    total = sum(weights)
    cdf = []
    acc = 0.0
    for w in weights:
        acc += w / total
        cdf.append(acc)

    out = []
    for _ in range(size):
        r = rng.random()
        lo, hi = 0, len(cdf) - 1
        while lo < hi:
            mid = (lo + hi) // 2
            if r <= cdf[mid]:
                hi = mid
            else:
                lo = mid + 1
        out.append(lo)
    return out

def gen_uniform(size: int, alphabet: int = 256, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    return bytes(rng.randrange(0, alphabet) for _ in range(size))

def gen_repetitive(size: int, dominant: int = ord('A'), dom_frac: float = 0.90, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    other_symbols = [i for i in range(256) if i != dominant]
    out = bytearray()
    for _ in range(size):
        if rng.random() < dom_frac:
            out.append(dominant)
        else:
            out.append(rng.choice(other_symbols))
    return bytes(out)

def gen_zipf_like(size: int, alphabet: int = 128, s: float = 1.2, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    weights = [1.0 / ((i + 1) ** s) for i in range(alphabet)]
    return bytes(_sample_cdf(rng, weights, size))

def gen_english_like(size: int, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    chars = (
        " etaoinshrdlcumwfgypbvkjxq"
        "ETAOINSHRDLCUMWFGYPBVKJXQ"
        "\n"
    )
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
    return bytes(ord(chars[i]) for i in _sample_cdf(rng, weights, size))

def gen_single_symbol(size: int, symbol: int = ord('z')) -> bytes:
    return bytes([symbol]) * size

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], bytes]] = {
    "uniform256": lambda size, seed: gen_uniform(size, alphabet=256, seed=seed),
    "uniform128": lambda size, seed: gen_uniform(size, alphabet=128, seed=seed),
    "zipf128": lambda size, seed: gen_zipf_like(size, alphabet=128, s=1.2, seed=seed),
    "zipf64": lambda size, seed: gen_zipf_like(size, alphabet=64, s=1.2, seed=seed),
    "repetitive90": lambda size, seed: gen_repetitive(size, dominant=ord('A'), dom_frac=0.90, seed=seed),
    "repetitive99": lambda size, seed: gen_repetitive(size, dominant=ord('A'), dom_frac=0.99, seed=seed),
    "english_like": lambda size, seed: gen_english_like(size, seed=seed),
    "single_symbol": lambda size, seed: gen_single_symbol(size),
}

def generate_dataset(name: str, size_bytes: int, seed: int) -> Tuple[str, bytes]:
    fn = GENERATOR_REGISTRY.get(name)
    if fn is None:
        raise ValueError(f"unknown dataset generator {name!r}, expected one of {sorted(GENERATOR_REGISTRY)}")
    return name, fn(size_bytes, seed)




# Experiment runner

@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    file_size_bytes: int
    run_id: int
    pipeline: str  # "table" or "search"
    unique_symbols: int

    build_ms: float
    encode_ms: float
    decode_ms: float
    total_ms: float

    encoded_bits: int
    compressed_bytes: int
    pad_bits: int
    compression_ratio: float

    bits_per_symbol: float
    entropy_bits: float
    redundancy_bits: float  # bits_per_symbol - entropy_bits
    max_code_length: int
    correctness_ok: int  # 1 or 0


def run_one(data: bytes, pipeline: str) -> MetricRow:
    if pipeline not in PIPELINES:
        raise ValueError(f"pipeline must be one of {PIPELINES}, got {pipeline!r}")

    ft = compute_frequencies(data)

    # Tree build
    t0 = now_ns()
    tree = CodeTree.build(ft, strategy="heap" if pipeline == "table" else "sort")
    t1 = now_ns()
    build_ms = ns_to_ms(t1 - t0)

    # encode
    t2 = now_ns()
    if pipeline == "table":
        bits = tree.encode(data)
    else:
        bits = tree.encode_by_search(data)
    packed, pad_bits = pack_bits(bits)
    t3 = now_ns()
    encode_ms = ns_to_ms(t3 - t2)

    # decode
    t4 = now_ns()
    decoded = bytes(tree.decode(unpack_bits(packed, pad_bits)))
    t5 = now_ns()
    decode_ms = ns_to_ms(t5 - t4)

    n = max(1, len(data))
    bits_per_symbol = len(bits) / n
    h = entropy(ft)

    return MetricRow(
        exp_name="",
        dataset_name="",
        file_size_bytes=len(data),
        run_id=0,
        pipeline=pipeline,
        unique_symbols=len(ft),
        build_ms=build_ms,
        encode_ms=encode_ms,
        decode_ms=decode_ms,
        total_ms=build_ms + encode_ms + decode_ms,
        encoded_bits=len(bits),
        compressed_bytes=len(packed),
        pad_bits=pad_bits,
        compression_ratio=len(packed) / n,
        bits_per_symbol=bits_per_symbol,
        entropy_bits=h,
        redundancy_bits=bits_per_symbol - h,
        max_code_length=max(tree.code_lengths().values()),
        correctness_ok=1 if decoded == data else 0,
    )


def write_csv(path: Path, rows: List[MetricRow]) -> None:
    fields = list(MetricRow.__dataclass_fields__.keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fields)
        w.writeheader()
        for r in rows:
            w.writerow({k: getattr(r, k) for k in fields})


SUMMARY_METRICS = (
    "compression_ratio",
    "bits_per_symbol",
    "redundancy_bits",
    "build_ms",
    "encode_ms",
    "decode_ms",
    "total_ms",
)

def mean_stdev(vals: List[float]) -> Tuple[float, float]:
    if len(vals) == 1:
        return vals[0], 0.0
    return statistics.mean(vals), statistics.stdev(vals)

def group_summary(rows: List[MetricRow], out_path: Path) -> None:
    """
    Group by exp_name, dataset_name, file_size_bytes, pipeline and compute mean/stdev
    """
    key_to: Dict[Tuple[str, str, int, str], List[MetricRow]] = {}
    for r in rows:
        key = (r.exp_name, r.dataset_name, r.file_size_bytes, r.pipeline)
        key_to.setdefault(key, []).append(r)

    summary_fields = ["exp_name", "dataset_name", "file_size_bytes", "pipeline", "n_runs"]
    for metric in SUMMARY_METRICS:
        summary_fields += [f"{metric}_mean", f"{metric}_stdev"]
    summary_fields.append("correctness_ok_rate")

    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=summary_fields)
        w.writeheader()
        for key, items in sorted(key_to.items()):
            exp_name, dataset_name, size_b, pipeline = key
            row = {
                "exp_name": exp_name,
                "dataset_name": dataset_name,
                "file_size_bytes": size_b,
                "pipeline": pipeline,
                "n_runs": len(items),
                "correctness_ok_rate": sum(x.correctness_ok for x in items) / len(items),
            }
            for metric in SUMMARY_METRICS:
                m, s = mean_stdev([getattr(x, metric) for x in items])
                row[f"{metric}_mean"] = m
                row[f"{metric}_stdev"] = s
            w.writerow(row)



# Plotting

def _save_line_chart(path: Path, x, series: Dict[str, List[float]], title: str, ylabel: str,
                     xlabel: str = "", xticklabels: Optional[List[str]] = None) -> None:
    plt.figure()
    for label, y in series.items():
        plt.plot(x, y, marker="o", label=label)
    if xticklabels is not None:
        plt.xticks(x, xticklabels, rotation=20, ha="right")
    if xlabel:
        plt.xlabel(xlabel)
    plt.ylabel(ylabel)
    plt.title(title)
    plt.legend()
    plt.tight_layout()
    plt.savefig(path, dpi=200)
    plt.close()


def plot_experiment_1(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp1_distribution"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    x = list(range(len(datasets)))

    def mean_for(dataset: str, pipeline: str, field: str) -> float:
        vals = [getattr(r, field) for r in exp_rows if r.dataset_name == dataset and r.pipeline == pipeline]
        return statistics.mean(vals) if vals else float("nan")

    _save_line_chart(
        outdir / "exp1_bits_per_symbol.png", x,
        {
            "huffman": [mean_for(d, "table", "bits_per_symbol") for d in datasets],
            "entropy": [mean_for(d, "table", "entropy_bits") for d in datasets],
        },
        "Experiment 1: Code Length vs Entropy by Distribution", "Bits per Symbol",
        xticklabels=datasets,
    )
    _save_line_chart(
        outdir / "exp1_encode_time.png", x,
        {p: [mean_for(d, p, "encode_ms") for d in datasets] for p in PIPELINES},
        "Experiment 1: Encode Time by Distribution", "Encode Time (ms)",
        xticklabels=datasets,
    )
    _save_line_chart(
        outdir / "exp1_total_time.png", x,
        {p: [mean_for(d, p, "total_ms") for d in datasets] for p in PIPELINES},
        "Experiment 1: Total Runtime by Distribution", "Total Time (ms) (build + encode + decode)",
        xticklabels=datasets,
    )


def plot_experiment_2(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp2_size_scaling"]
    if not exp_rows:
        return

    distributions = sorted(set(r.dataset_name for r in exp_rows))

    for dist in distributions:
        dist_rows = [r for r in exp_rows if r.dataset_name == dist]
        sizes = sorted(set(r.file_size_bytes for r in dist_rows))

        def mean_size(size: int, pipeline: str, field: str) -> float:
            vals = [getattr(r, field) for r in dist_rows if r.file_size_bytes == size and r.pipeline == pipeline]
            return statistics.mean(vals) if vals else float("nan")

        _save_line_chart(
            outdir / f"exp2_encode_time_{dist}.png", sizes,
            {p: [mean_size(s, p, "encode_ms") for s in sizes] for p in PIPELINES},
            f"Experiment 2: Encode Time vs Size ({dist})", "Encode Time (ms)",
            xlabel="File Size (bytes)",
        )
        _save_line_chart(
            outdir / f"exp2_build_time_{dist}.png", sizes,
            {p: [mean_size(s, p, "build_ms") for s in sizes] for p in PIPELINES},
            f"Experiment 2: Tree Build Time vs Size ({dist})", "Build Time (ms)",
            xlabel="File Size (bytes)",
        )
        _save_line_chart(
            outdir / f"exp2_compression_ratio_{dist}.png", sizes,
            {"huffman": [mean_size(s, "table", "compression_ratio") for s in sizes]},
            f"Experiment 2: Compression Ratio vs Size ({dist})", "Compressed Bytes / Original Bytes",
            xlabel="File Size (bytes)",
        )


def plot_experiment_3(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp3_pipeline_compare"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    x = list(range(len(datasets)))

    def mean_total(dataset: str, pipeline: str) -> float:
        vals = [r.total_ms for r in exp_rows if r.dataset_name == dataset and r.pipeline == pipeline]
        return statistics.mean(vals) if vals else float("nan")

    _save_line_chart(
        outdir / "exp3_total_time.png", x,
        {p: [mean_total(d, p) for d in datasets] for p in PIPELINES},
        "Experiment 3: End-to-End Time by Dataset", "Total Time (ms) (build + encode + decode)",
        xticklabels=datasets,
    )





# Main

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]

def run_config(rows: List[MetricRow], exp_name: str, gen_name: str, size_b: int, runs: int, seed: int,
               label: Optional[str] = None) -> None:
    for run_id in range(1, runs + 1):
        dataset_name, data = generate_dataset(gen_name, size_b, seed + run_id)
        for pipeline in PIPELINES:
            row = run_one(data, pipeline)
            row.exp_name = exp_name
            row.dataset_name = label or dataset_name
            row.run_id = run_id
            rows.append(row)

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Huffman code tree experiments")
    ap.add_argument("--outdir", type=str, default="results", help="Output directory for CSV and plots")
    ap.add_argument("--runs", type=int, default=5, help="Repetitions per configuration (>=3 recommended for timing)")
    ap.add_argument("--seed", type=int, default=123, help="Base random seed")
    ap.add_argument("--demo", type=str, default=None, metavar="TEXT",
                    help="Encode and decode TEXT, print the bit string, and exit")
    ap.add_argument("--no_plots", action="store_true", help="Write CSV files only")

    # Experiment toggles
    ap.add_argument("--no_exp1", action="store_true", help="Disable experiment 1 (distribution)")
    ap.add_argument("--no_exp2", action="store_true", help="Disable experiment 2 (size scaling)")
    ap.add_argument("--no_exp3", action="store_true", help="Disable experiment 3 (pipeline compare)")

    # Experiment 1 controls
    ap.add_argument("--exp1_size_kb", type=int, default=64, help="Experiment 1 fixed file size in KB")
    ap.add_argument("--exp1_generators", type=str, default="uniform256,zipf128,repetitive90,english_like,single_symbol",
                    help="Comma-separated dataset generator names for experiment 1")

    # Experiment 2 controls
    ap.add_argument("--exp2_min_kb", type=int, default=4, help="Experiment 2 min size in KB (power-of-two growth)")
    ap.add_argument("--exp2_max_kb", type=int, default=512, help="Experiment 2 max size in KB (power-of-two growth)")
    ap.add_argument("--exp2_generators", type=str, default="uniform256,zipf128,repetitive90",
                    help="Comma-separated dataset generator names for experiment 2")

    # Experiment 3 controls
    ap.add_argument("--exp3_size_kb", type=int, default=256, help="Experiment 3 file size in KB")
    return ap

def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.demo is not None:
        try:
            encoded, decoded = demo(args.demo)
        except HuffmanError as e:
            print(f"error: {e}")
            return 1
        print(f"Encoded string: {encoded}")
        print(f"Decoded string: {decoded}")
        return 0

    outdir = Path(args.outdir)
    safe_mkdir(outdir)

    rows: List[MetricRow] = []

    # Experiment 1: distributions (fixed size)
    if not args.no_exp1:
        fixed_size = max(1, args.exp1_size_kb) * 1024
        for gen_name in parse_csv_list(args.exp1_generators):
            run_config(rows, "exp1_distribution", gen_name, fixed_size, args.runs, args.seed)

    # Experiment 2: size scaling (multiple sizes, powers of 2)
    if not args.no_exp2:
        min_bytes = max(1, args.exp2_min_kb) * 1024
        max_bytes = max(1, args.exp2_max_kb) * 1024

        sizes: List[int] = []
        s = min_bytes
        while s <= max_bytes:
            sizes.append(s)
            s *= 2

        for gen_name in parse_csv_list(args.exp2_generators):
            for size_b in sizes:
                run_config(rows, "exp2_size_scaling", gen_name, size_b, args.runs, args.seed + 10_000 + size_b)

    # Experiment 3: pipeline compare across every generator
    if not args.no_exp3:
        size_b = max(1, args.exp3_size_kb) * 1024
        for gen_name in GENERATOR_REGISTRY:
            run_config(rows, "exp3_pipeline_compare", gen_name, size_b, args.runs, args.seed + 200_000 + size_b,
                       label=f"{gen_name}_{size_b // 1024}kb")

    # Write raw and summary
    metrics_csv = outdir / "metrics.csv"
    summary_csv = outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)

    # Plots
    if not args.no_plots:
        plot_experiment_1(rows, outdir)
        plot_experiment_2(rows, outdir)
        plot_experiment_3(rows, outdir)

    ok_rate = sum(r.correctness_ok for r in rows) / max(1, len(rows))
    print(f"Wrote {len(rows)} rows to {metrics_csv}")
    print(f"Wrote grouped summary to {summary_csv}")
    print(f"Correctness rate across all runs: {ok_rate:.3f}")
    if not args.no_plots:
        print("Charts saved in:", outdir.resolve())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
