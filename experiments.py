"""
Huffman code table experiments

Builds code tables over synthetic datasets, with repeated runs, and records
how close the codes come to the entropy of each source

Outputs (in --outdir):
  - metrics.csv     (raw row per run per dataset)
  - summary.csv     (grouped mean/stdev)
  - *.png           (charts)

How to run:
  python experiments.py --outdir results --runs 5
  python experiments.py --outdir results --datasets zipf128,english_like --sizes_kb 1,4,16,64
"""

from __future__ import annotations

import argparse
import csv
import dataclasses
import logging
import math
import random
import statistics
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Hashable, List, Optional, Sequence, Tuple

import matplotlib
import matplotlib.pyplot as plt

import huffman as huff

logger = logging.getLogger("huffman_table.experiments")

ENGLISH_WEIGHTS = {
    " ": 13.0,
    "\n": 1.5,
    **{ch: 6.0 for ch in "etaoinshrdluETAOINSHRDLU"},
    **{ch: 2.5 for ch in "cmfwgypbvkCMFWGYPBVK"},
    **{ch: 1.2 for ch in "jxqzJXQZ"},
}


def entropy_bits(ft: Dict[Hashable, int]) -> float:
    """Shannon entropy of a frequency table, in bits per symbol"""
    total = sum(ft.values())
    if total == 0:
        return 0.0
    return -sum((c / total) * math.log2(c / total) for c in ft.values())

def is_prefix_free(codes: Dict[Hashable, str]) -> bool:
    # after sorting, a code that prefixes another sorts directly before some code it prefixes
    ordered = sorted(codes.values())
    return all(not b.startswith(a) for a, b in zip(ordered, ordered[1:]))


# Synthetic datasets

def sample_weighted(symbols: Sequence, weights: Sequence[float], size: int, seed: int) -> list:
    return random.Random(seed).choices(symbols, weights=weights, k=size)

def gen_uniform(size: int, seed: int = 0) -> bytes:
    return bytes(sample_weighted(range(256), [1.0] * 256, size, seed))

def gen_zipf(size: int, alphabet: int = 128, s: float = 1.2, seed: int = 0) -> bytes:
    return bytes(sample_weighted(range(alphabet), [1.0 / (rank ** s) for rank in range(1, alphabet + 1)], size, seed))

def gen_repetitive(size: int, dominant: int = ord('A'), dom_frac: float = 0.90, seed: int = 0) -> bytes:
    # the remaining probability mass is spread evenly over the other 255 byte values
    weights = [dom_frac if b == dominant else (1.0 - dom_frac) / 255 for b in range(256)]
    return bytes(sample_weighted(range(256), weights, size, seed))

def gen_english_like(size: int, seed: int = 0) -> str:
    return "".join(sample_weighted(list(ENGLISH_WEIGHTS), list(ENGLISH_WEIGHTS.values()), size, seed))

DATASETS: Dict[str, Callable[[int, int], object]] = {
    "uniform256": lambda size, seed: gen_uniform(size, seed=seed),
    "zipf128": lambda size, seed: gen_zipf(size, alphabet=128, seed=seed),
    "repetitive90": lambda size, seed: gen_repetitive(size, dom_frac=0.90, seed=seed),
    "english_like": lambda size, seed: gen_english_like(size, seed=seed),
}

def generate_dataset(name: str, size: int, seed: int) -> Tuple[str, object]:
    """
    Unknown dataset names fall back to uniform256 so one typo does not
    abort a long run, the fallback is visible in the dataset name
    """
    if name not in DATASETS:
        logger.warning("unknown dataset %r, using uniform256", name)
        return f"{name}_fallback_uniform256", gen_uniform(size, seed=seed)
    return name, DATASETS[name](size, seed)


# Measurements

@dataclass
class MetricRow:
    dataset_name: str
    input_size: int
    run_id: int
    unique_symbols: int
    build_ms: float           # count + tree + codes
    average_code_length: float
    entropy_bits: float
    redundancy: float
    max_code_length: int
    prefix_free_ok: int
    weight_ok: int            # root weight == input size


def run_one(data, dataset_name: str = "", run_id: int = 0) -> MetricRow:
    started = time.perf_counter_ns()
    ft = huff.count_frequencies(data)
    root = huff.build_huffman_tree(ft)
    if root is None:
        raise ValueError("cannot run an experiment on an empty dataset")
    table = huff.assign_codes(root)
    elapsed_ms = (time.perf_counter_ns() - started) / 1e6

    avg_len = table.average_code_length()
    h = entropy_bits(ft)
    return MetricRow(
        dataset_name=dataset_name,
        input_size=len(data),
        run_id=run_id,
        unique_symbols=len(ft),
        build_ms=elapsed_ms,
        average_code_length=avg_len,
        entropy_bits=h,
        redundancy=avg_len - h,
        max_code_length=max(row.bits for row in table),
        prefix_free_ok=int(is_prefix_free(table.bit_strings())),
        weight_ok=int(root.weight == len(data)),
    )


def write_csv(path: Path, records: List[dict]) -> None:
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=list(records[0]) if records else [])
        w.writeheader()
        w.writerows(records)


SUMMARY_FIELDS = ("build_ms", "average_code_length", "entropy_bits", "redundancy")

def summarize(rows: List[MetricRow]) -> List[dict]:
    """One record per (dataset, size) with mean/stdev of the measured fields"""
    groups: Dict[Tuple[str, int], List[MetricRow]] = {}
    for r in rows:
        groups.setdefault((r.dataset_name, r.input_size), []).append(r)

    records = []
    for (dataset_name, size), items in sorted(groups.items()):
        record = {"dataset_name": dataset_name, "input_size": size, "n_runs": len(items)}
        for field in SUMMARY_FIELDS:
            vals = [getattr(x, field) for x in items]
            record[f"{field}_mean"] = statistics.mean(vals)
            record[f"{field}_stdev"] = statistics.stdev(vals) if len(vals) > 1 else 0.0
        record["max_code_length_max"] = max(x.max_code_length for x in items)
        record["checks_ok_rate"] = sum(x.prefix_free_ok and x.weight_ok for x in items) / len(items)
        records.append(record)
    return records


# Plotting

def plot_code_length(summary: List[dict], outdir: Path) -> None:
    """Average code length against entropy at the largest size of every dataset"""
    largest: Dict[str, dict] = {}
    for rec in summary:
        if rec["input_size"] >= largest.get(rec["dataset_name"], {}).get("input_size", 0):
            largest[rec["dataset_name"]] = rec
    names = sorted(largest)
    x = range(len(names))

    fig, ax = plt.subplots()
    ax.bar([i - 0.2 for i in x], [largest[n]["average_code_length_mean"] for n in names], width=0.4, label="huffman")
    ax.bar([i + 0.2 for i in x], [largest[n]["entropy_bits_mean"] for n in names], width=0.4, label="entropy")
    ax.set_xticks(list(x))
    ax.set_xticklabels(names, rotation=20, ha="right")
    ax.set_ylabel("Bits per Symbol")
    ax.set_title("Average Code Length vs Entropy")
    ax.legend()
    fig.tight_layout()
    fig.savefig(outdir / "code_length.png", dpi=200)
    plt.close(fig)


def plot_build_time(summary: List[dict], outdir: Path) -> None:
    fig, ax = plt.subplots()
    for name in sorted({rec["dataset_name"] for rec in summary}):
        recs = sorted((r for r in summary if r["dataset_name"] == name), key=lambda r: r["input_size"])
        ax.plot([r["input_size"] for r in recs], [r["build_ms_mean"] for r in recs], marker="o", label=name)
    ax.set_xscale("log", base=2)
    ax.set_xlabel("Input Size (symbols)")
    ax.set_ylabel("Build Time (ms)")
    ax.set_title("Table Build Time vs Size")
    ax.legend()
    fig.tight_layout()
    fig.savefig(outdir / "build_time.png", dpi=200)
    plt.close(fig)


# Main

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Measure Huffman code tables on synthetic datasets")
    ap.add_argument("--outdir", default="results", help="Output directory for CSV and plots")
    ap.add_argument("--runs", type=int, default=5, help="Repetitions per dataset and size")
    ap.add_argument("--seed", type=int, default=123, help="Base random seed")
    ap.add_argument("--datasets", default=",".join(DATASETS), help="Comma-separated dataset names")
    ap.add_argument("--sizes_kb", default="1,4,16,64,256", help="Comma-separated input sizes in KB")
    ap.add_argument("--no_plots", action="store_true", help="Only write the CSV files")
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    matplotlib.use("Agg")

    outdir = Path(args.outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    sizes = [int(kb) * 1024 for kb in parse_csv_list(args.sizes_kb)]
    rows: List[MetricRow] = []
    for name in parse_csv_list(args.datasets):
        for size in sizes:
            for run_id in range(1, args.runs + 1):
                dataset_name, data = generate_dataset(name, size, args.seed + size + run_id)
                rows.append(run_one(data, dataset_name, run_id))
        logger.info("%s done (%d sizes x %d runs)", name, len(sizes), args.runs)

    summary = summarize(rows)
    write_csv(outdir / "metrics.csv", [dataclasses.asdict(r) for r in rows])
    write_csv(outdir / "summary.csv", summary)

    if not args.no_plots and summary:
        plot_code_length(summary, outdir)
        plot_build_time(summary, outdir)

    ok_rate = sum(r.prefix_free_ok and r.weight_ok for r in rows) / max(1, len(rows))
    print(f"Wrote {len(rows)} rows and {len(summary)} summary records to {outdir.resolve()}")
    print(f"Tables passing prefix and weight checks: {ok_rate:.3f}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
