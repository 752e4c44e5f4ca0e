from __future__ import annotations

import heapq
import itertools
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Hashable, Iterable, Iterator, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

LEAF_RANK = 0      # leaves sort before internal nodes of equal weight
INTERNAL_RANK = 1


class QueueUnderflowError(RuntimeError):
    """Raised when a merge is attempted with fewer than two queued subtrees."""


# Frequency counting

def count_frequencies(symbols: Iterable[Hashable]) -> Dict[Hashable, int]:
    return dict(Counter(symbols))


# Merge tree nodes (Leaf | Internal)

@dataclass(frozen=True)
class Leaf:
    symbol: Hashable
    weight: int


@dataclass(frozen=True)
class Internal:
    weight: int
    left: "MergeNode"
    right: "MergeNode"


MergeNode = Union[Leaf, Internal]


def node_sort_key(node: MergeNode) -> Tuple[int, int]:
    rank = LEAF_RANK if isinstance(node, Leaf) else INTERNAL_RANK
    return node.weight, rank


def merge_nodes(a: MergeNode, b: MergeNode) -> Internal:
    """
    Combine two subtrees, a being the one extracted first
    The lighter subtree goes on the left, on a tie a keeps the left branch
    """
    if b.weight < a.weight:
        a, b = b, a
    return Internal(weight=a.weight + b.weight, left=a, right=b)


# Priority queue

class MergeQueue:
    """
    Min-heap over merge nodes ordered by (weight, kind rank)

    Nodes of the same weight and kind come out in insertion order, the
    counter in each heap entry also keeps heapq from ever comparing nodes
    """

    def __init__(self, nodes: Iterable[MergeNode] = ()):
        self._counter = itertools.count()
        self._heap = [self._entry(node) for node in nodes]
        heapq.heapify(self._heap)

    @classmethod
    def from_frequencies(cls, frequency_table: Dict[Hashable, int]) -> "MergeQueue":
        leaves = []
        for symbol, count in frequency_table.items():
            if count < 1:
                raise ValueError(f"frequency for {symbol!r} must be >= 1, got {count}")
            leaves.append(Leaf(symbol, count))
        return cls(leaves)

    def _entry(self, node: MergeNode):
        weight, rank = node_sort_key(node)
        return weight, rank, next(self._counter), node

    def __len__(self) -> int:
        return len(self._heap)

    def insert(self, node: MergeNode) -> None:
        heapq.heappush(self._heap, self._entry(node))

    def peek_min(self) -> Optional[MergeNode]:
        return self._heap[0][-1] if self._heap else None

    def extract_min(self) -> Optional[MergeNode]:
        if not self._heap:
            return None
        return heapq.heappop(self._heap)[-1]

    def extract_pair(self) -> Tuple[MergeNode, MergeNode]:
        if len(self._heap) < 2:
            raise QueueUnderflowError(f"cannot merge, only {len(self._heap)} subtree(s) queued")
        first = heapq.heappop(self._heap)[-1]
        second = heapq.heappop(self._heap)[-1]
        return first, second


# Tree construction

def build_huffman_tree(frequency_table: Dict[Hashable, int]) -> Optional[MergeNode]: # frequency_table: dict of symbol -> frequency
    if not frequency_table:
        return None # nothing to build a tree from

    queue = MergeQueue.from_frequencies(frequency_table)

    merges = 0
    while len(queue) > 1:
        first, second = queue.extract_pair()
        queue.insert(merge_nodes(first, second))
        merges += 1

    root = queue.extract_min()
    logger.debug("built tree over %d symbols with %d merges, root weight %d",
                 len(frequency_table), merges, root.weight)
    return root


# Code table

@dataclass(frozen=True)
class CodeRow:
    symbol: Hashable
    frequency: int
    code: int  # bit pattern, most significant bit first
    bits: int

    def bit_string(self) -> str:
        return format(self.code, f"0{self.bits}b")

    def __str__(self) -> str:
        return f"{self.symbol!r}, {self.frequency}, {self.code}, {self.bits}"


class CodeTable:
    def __init__(self, rows: Iterable[CodeRow]):
        self._rows: Tuple[CodeRow, ...] = tuple(rows)
        if not self._rows:
            raise ValueError("a code table needs at least one row")

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[CodeRow]:
        return iter(self._rows)

    def __getitem__(self, index: int) -> CodeRow:
        return self._rows[index]

    def __str__(self) -> str:
        return "\n".join(str(row) for row in self._rows)

    def __repr__(self) -> str:
        return f"CodeTable({len(self._rows)} rows)"

    @property
    def total_weight(self) -> int:
        return sum(row.frequency for row in self._rows)

    def lookup(self, symbol: Hashable) -> Optional[CodeRow]:
        for row in self._rows:
            if row.symbol == symbol:
                return row
        return None

    def bit_strings(self) -> Dict[Hashable, str]:
        return {row.symbol: row.bit_string() for row in self._rows}

    def average_code_length(self) -> float:
        """Frequency-weighted mean code length in bits per symbol"""
        return sum(row.frequency * row.bits for row in self._rows) / self.total_weight


def assign_codes(root: MergeNode) -> CodeTable:
    """
    Walk the tree depth first (pre-order, left before right) and emit one row
    per leaf, appending a 0 bit on the way left and a 1 bit on the way right

    A root that is itself a leaf gets a forced 1-bit code instead of 0 bits
    """
    if not isinstance(root, (Leaf, Internal)):
        raise TypeError(f"expected a merge tree root, got {type(root).__name__}")

    if isinstance(root, Leaf):
        return CodeTable([CodeRow(root.symbol, root.weight, 0, 1)])

    rows: List[CodeRow] = []
    stack: List[Tuple[MergeNode, int, int]] = [(root, 0, 0)]
    while stack:
        node, code, depth = stack.pop()
        if isinstance(node, Leaf):
            rows.append(CodeRow(node.symbol, node.weight, code, depth))
            continue
        # right pushed first so the left branch is emitted first
        stack.append((node.right, (code << 1) | 1, depth + 1))
        stack.append((node.left, code << 1, depth + 1))
    return CodeTable(rows)


def build_code_table(text: Iterable[Hashable]) -> Optional[CodeTable]:
    root = build_huffman_tree(count_frequencies(text))
    if root is None:
        return None
    return assign_codes(root)


# Debug dumps

def format_frequencies(frequency_table: Dict[Hashable, int]) -> str:
    return "\n".join(f"{symbol!r} -> {count}" for symbol, count in frequency_table.items())


def format_tree(root: MergeNode) -> str:
    lines = []
    stack: List[Tuple[MergeNode, int]] = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        indent = "  " * depth
        if isinstance(node, Leaf):
            lines.append(f"{indent}Leaf {node.symbol!r} weight={node.weight}")
        else:
            lines.append(f"{indent}Internal weight={node.weight}")
            stack.append((node.right, depth + 1))
            stack.append((node.left, depth + 1))
    return "\n".join(lines)