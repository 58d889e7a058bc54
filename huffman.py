import heapq
from types import MappingProxyType
from typing import Dict, Hashable, Iterable, Iterator, List, Mapping, Optional, Tuple

from frequency import compute_frequencies

Code = Tuple[bool, ...] # False -> left branch, True -> right branch


class HuffmanError(ValueError):
    """Base class for every error raised by the Huffman code tree."""


class EmptyModelError(HuffmanError):
    def __init__(self):
        super().__init__("cannot build a Huffman tree from an empty frequency map")


class UnknownSymbolError(HuffmanError):
    def __init__(self, symbol):
        self.symbol = symbol
        super().__init__(f"symbol {symbol!r} is not in the code tree")


class MalformedBitSequenceError(HuffmanError):
    def __init__(self, message: str, position: int):
        self.position = position # index of the offending bit, or len(bits) for a truncated code
        super().__init__(f"{message} (bit {position})")


class HuffmanNode: # Node for Huffman tree
    def __init__(self, symbol, frequency, left=None, right=None):
        self.symbol = symbol    # None for internal nodes
        self.frequency = frequency # leaf: occurrence count, internal: sum over the subtree
        self.left = left
        self.right = right

def is_leaf(node: HuffmanNode) -> bool:
    return node.left is None and node.right is None


# Tree construction
#
# Forest entries are (frequency, order, node). `order` is the creation index:
# leaves are numbered by first appearance, merged nodes after everything that
# exists when they are created. Equal frequencies are resolved by the lower
# index, so the tree is fully determined by the frequency map.

def _leaf_entries(frequencies: Mapping[Hashable, int]) -> List[Tuple[int, int, HuffmanNode]]:
    if not frequencies:
        raise EmptyModelError()
    entries = []
    for order, (symbol, frequency) in enumerate(frequencies.items()):
        if frequency <= 0:
            raise ValueError(f"frequency of {symbol!r} must be positive, got {frequency}")
        entries.append((frequency, order, HuffmanNode(symbol, frequency)))
    return entries

def _merge(first, second, order):
    node = HuffmanNode(None, first[0] + second[0], left=first[2], right=second[2])
    return (node.frequency, order, node)

def _build_with_heap(entries):
    priority_queue = list(entries)
    heapq.heapify(priority_queue)
    next_order = len(priority_queue)

    while len(priority_queue) > 1:
        left = heapq.heappop(priority_queue)
        right = heapq.heappop(priority_queue)
        heapq.heappush(priority_queue, _merge(left, right, next_order))
        next_order += 1

    return priority_queue[0][2]

def _build_with_sort(entries):
    """
    Simple baseline: stable re-sort of the whole forest on every merge,
    O(n^2 log n) in the number of distinct symbols
    """
    forest = list(entries)
    next_order = len(forest)

    while len(forest) > 1:
        forest.sort(key=lambda entry: (entry[0], entry[1]))
        left, right = forest[0], forest[1]
        del forest[:2]
        forest.append(_merge(left, right, next_order))
        next_order += 1

    return forest[0][2]

BUILD_STRATEGIES = {
    "heap": _build_with_heap,
    "sort": _build_with_sort,
}


def _collect_codes(root: HuffmanNode) -> Dict[Hashable, Code]:
    codes: Dict[Hashable, Code] = {}
    if is_leaf(root):
        # Single-symbol alphabet -> the empty path is useless, give it one bit
        codes[root.symbol] = (False,)
        return codes

    # Skewed frequencies give trees deeper than the recursion limit, walk with a stack
    stack = [(root, ())]
    while stack:
        node, path = stack.pop()
        if node is None:
            continue
        if is_leaf(node):
            codes[node.symbol] = path
            continue
        stack.append((node.right, path + (True,)))
        stack.append((node.left, path + (False,)))
    return codes


class CodeTree:
    """Huffman code tree built from a frequency map.

    The node graph and the symbol -> code table are fixed once the tree is
    built, so one instance can serve any number of encode/decode calls.

    A single-symbol alphabet produces a one-node tree whose code is a single
    ``False`` bit; decoding such a tree emits the symbol once per bit.
    """

    def __init__(self, root: HuffmanNode):
        self.root = root
        self._codes = _collect_codes(root)

    @classmethod
    def build(cls, frequencies: Mapping[Hashable, int], strategy: str = "heap") -> "CodeTree":
        try:
            build_fn = BUILD_STRATEGIES[strategy]
        except KeyError:
            raise ValueError(f"strategy must be one of {sorted(BUILD_STRATEGIES)}, got {strategy!r}") from None
        return cls(build_fn(_leaf_entries(frequencies)))

    @classmethod
    def from_sequence(cls, sequence: Iterable[Hashable], strategy: str = "heap") -> "CodeTree":
        return cls.build(compute_frequencies(sequence), strategy=strategy)

    @property
    def codes(self) -> Mapping[Hashable, Code]:
        return MappingProxyType(self._codes)

    @property
    def symbols(self) -> List[Hashable]:
        return list(self._codes)

    @property
    def weight(self) -> int:
        return self.root.frequency

    def __len__(self) -> int:
        return len(self._codes)

    def __contains__(self, symbol) -> bool:
        return symbol in self._codes

    def code_for(self, symbol) -> Code:
        try:
            return self._codes[symbol]
        except KeyError:
            raise UnknownSymbolError(symbol) from None

    def code_lengths(self) -> Dict[Hashable, int]:
        return {symbol: len(code) for symbol, code in self._codes.items()}

    def leaves(self) -> Iterator[HuffmanNode]:
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node is None:
                continue
            if is_leaf(node):
                yield node
            else:
                stack.append(node.right)
                stack.append(node.left)

    def find_path(self, symbol) -> Optional[Code]:
        """Depth-first search for `symbol`, left subtree first.

        Returns the root-to-leaf path, or None if no leaf holds the symbol.
        This walks the tree on every call; `code_for` answers the same
        question from the precomputed table.
        """
        if is_leaf(self.root):
            return (False,) if self.root.symbol == symbol else None

        stack = [(self.root, ())]
        while stack:
            node, path = stack.pop()
            if node is None:
                continue
            if is_leaf(node):
                if node.symbol == symbol:
                    return path
                continue
            stack.append((node.right, path + (True,)))
            stack.append((node.left, path + (False,)))
        return None

    def encode(self, sequence: Iterable[Hashable]) -> List[bool]:
        codes = self._codes
        bits: List[bool] = []
        for symbol in sequence:
            try:
                bits.extend(codes[symbol])
            except KeyError:
                raise UnknownSymbolError(symbol) from None
        return bits

    def encode_by_search(self, sequence: Iterable[Hashable]) -> List[bool]:
        bits: List[bool] = []
        for symbol in sequence:
            path = self.find_path(symbol)
            if path is None:
                raise UnknownSymbolError(symbol)
            bits.extend(path)
        return bits

    def decode(self, bits: Iterable[bool]) -> list:
        root = self.root
        decoded = []

        if is_leaf(root):
            for position, bit in enumerate(bits):
                if bit:
                    raise MalformedBitSequenceError("single-symbol tree has no right branch", position)
                decoded.append(root.symbol)
            return decoded

        node = root
        consumed = 0
        for position, bit in enumerate(bits):
            node = node.right if bit else node.left
            if node is None:
                raise MalformedBitSequenceError("bit leads to a missing branch", position)

            # Leaf
            if is_leaf(node):
                decoded.append(node.symbol)
                node = root
            consumed = position + 1

        if node is not root:
            raise MalformedBitSequenceError("bit sequence ends in the middle of a code", consumed)
        return decoded


def build(frequencies: Mapping[Hashable, int], strategy: str = "heap") -> CodeTree:
    return CodeTree.build(frequencies, strategy=strategy)

def average_code_length(tree: CodeTree, frequencies: Mapping[Hashable, int]) -> float: # expected bits per symbol under `frequencies`
    n = sum(frequencies.values())
    if n == 0:
        return 0.0
    return sum(len(tree.code_for(symbol)) * count for symbol, count in frequencies.items()) / n
