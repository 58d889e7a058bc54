import random
import threading

import pytest

from frequency import compute_frequencies
from huffman import (
    CodeTree,
    EmptyModelError,
    HuffmanError,
    HuffmanNode,
    MalformedBitSequenceError,
    UnknownSymbolError,
    average_code_length,
    build,
    is_leaf,
)


def shape(node):
    if is_leaf(node):
        return (node.symbol, node.frequency)
    return (node.frequency, shape(node.left), shape(node.right))

def internal_nodes(node):
    if is_leaf(node):
        return
    yield node
    yield from internal_nodes(node.left)
    yield from internal_nodes(node.right)


# Scenarios

def test_two_symbols_get_one_bit_each():
    tree = build(compute_frequencies("aaab"))
    assert dict(tree.codes) == {"b": (False,), "a": (True,)}
    bits = tree.encode("aaab")
    assert bits == [True, True, True, False]
    assert "".join(tree.decode(bits)) == "aaab"


def test_three_equal_weights_follow_first_appearance():
    tree = build(compute_frequencies("abcabc"))
    assert dict(tree.codes) == {
        "c": (False,),
        "a": (True, False),
        "b": (True, True),
    }
    assert sorted(tree.code_lengths().values()) == [1, 2, 2]
    assert "".join(tree.decode(tree.encode("abcabc"))) == "abcabc"


def test_build_on_empty_map_fails():
    with pytest.raises(EmptyModelError):
        build(compute_frequencies(""))
    with pytest.raises(EmptyModelError):
        CodeTree.from_sequence("")


def test_single_symbol_uses_one_bit_per_occurrence():
    tree = CodeTree.from_sequence("zzzz")
    assert is_leaf(tree.root)
    assert len(tree) == 1
    assert tree.code_for("z") == (False,)
    bits = tree.encode("zzzz")
    assert bits == [False] * 4
    assert "".join(tree.decode(bits)) == "zzzz"
    assert tree.decode([]) == []


def test_single_symbol_tree_rejects_right_branch():
    tree = CodeTree.from_sequence("zzzz")
    with pytest.raises(MalformedBitSequenceError) as exc_info:
        tree.decode([False, True])
    assert exc_info.value.position == 1


def test_trailing_partial_code_is_malformed():
    tree = CodeTree.from_sequence("abcabc")
    bits = tree.encode("abc") + [True]
    with pytest.raises(MalformedBitSequenceError) as exc_info:
        tree.decode(bits)
    assert exc_info.value.position == len(bits)


def test_unknown_symbol_fails_without_partial_output():
    tree = CodeTree.from_sequence("aaab")
    with pytest.raises(UnknownSymbolError) as exc_info:
        tree.encode("abx")
    assert exc_info.value.symbol == "x"
    with pytest.raises(UnknownSymbolError):
        tree.encode_by_search("abx")
    with pytest.raises(UnknownSymbolError):
        tree.code_for("x")


def test_errors_share_a_value_error_base():
    for cls in (EmptyModelError, UnknownSymbolError, MalformedBitSequenceError):
        assert issubclass(cls, HuffmanError)
        assert issubclass(cls, ValueError)


def test_non_positive_frequency_is_rejected():
    with pytest.raises(ValueError):
        build({"a": 3, "b": 0})


def test_unknown_strategy_is_rejected():
    with pytest.raises(ValueError):
        build({"a": 1, "b": 2}, strategy="quick")


# Properties

SAMPLES = [
    "aaab",
    "abcabc",
    "abracadabra",
    "the quick brown fox jumps over the lazy dog",
    "mississippi river",
    b"\x00\x01\x01\x02\x02\x02\x03\x03\x03\x03\xff",
]

def random_text(seed, size=2000):
    rng = random.Random(seed)
    alphabet = "abcdefghij "
    weights = [50, 30, 20, 10, 8, 5, 3, 2, 1, 1, 40]
    return "".join(rng.choices(alphabet, weights=weights, k=size))


@pytest.mark.parametrize("data", SAMPLES + [random_text(s) for s in range(3)])
def test_round_trip(data):
    tree = CodeTree.from_sequence(data)
    decoded = tree.decode(tree.encode(data))
    if isinstance(data, bytes):
        assert bytes(decoded) == data
    else:
        assert "".join(decoded) == data


@pytest.mark.parametrize("data", SAMPLES)
def test_codes_are_prefix_free(data):
    codes = list(CodeTree.from_sequence(data).codes.values())
    for i, a in enumerate(codes):
        for j, b in enumerate(codes):
            if i != j:
                assert b[:len(a)] != a


@pytest.mark.parametrize("data", SAMPLES)
def test_weights_sum_to_children_and_input_length(data):
    tree = CodeTree.from_sequence(data)
    assert tree.weight == len(data)
    for node in internal_nodes(tree.root):
        assert node.left is not None and node.right is not None
        assert node.symbol is None
        assert node.frequency == node.left.frequency + node.right.frequency


@pytest.mark.parametrize("data", SAMPLES)
def test_build_is_deterministic_across_runs_and_strategies(data):
    freqs = compute_frequencies(data)
    first = build(freqs)
    second = build(freqs)
    baseline = build(freqs, strategy="sort")
    assert shape(first.root) == shape(second.root) == shape(baseline.root)
    assert dict(first.codes) == dict(second.codes) == dict(baseline.codes)


@pytest.mark.parametrize("data", SAMPLES + [random_text(7)])
def test_more_frequent_symbols_get_shorter_or_equal_codes(data):
    freqs = compute_frequencies(data)
    lengths = build(freqs).code_lengths()
    for a in freqs:
        for b in freqs:
            if freqs[a] > freqs[b]:
                assert lengths[a] <= lengths[b]


@pytest.mark.parametrize("data", SAMPLES)
def test_tree_search_agrees_with_code_table(data):
    tree = CodeTree.from_sequence(data)
    for symbol in tree.symbols:
        assert tree.find_path(symbol) == tree.code_for(symbol)
    assert tree.find_path("not-a-symbol") is None
    assert tree.encode_by_search(data) == tree.encode(data)


def test_known_optimal_code_lengths():
    # Classic textbook example, total cost 224
    freqs = {"a": 45, "b": 13, "c": 12, "d": 16, "e": 9, "f": 5}
    tree = build(freqs)
    assert tree.code_lengths() == {"a": 1, "b": 3, "c": 3, "d": 3, "e": 4, "f": 4}
    assert sum(len(tree.code_for(s)) * f for s, f in freqs.items()) == 224
    assert average_code_length(tree, freqs) == pytest.approx(2.24)


def test_leaves_are_yielded_left_to_right():
    tree = CodeTree.from_sequence("abcabc")
    assert [leaf.symbol for leaf in tree.leaves()] == ["c", "a", "b"]
    assert all(is_leaf(leaf) for leaf in tree.leaves())


def test_codes_view_is_read_only():
    tree = CodeTree.from_sequence("aaab")
    with pytest.raises(TypeError):
        tree.codes["a"] = (False,)
    assert "a" in tree
    assert "x" not in tree


def test_decode_accepts_int_bits():
    tree = CodeTree.from_sequence("abcabc")
    assert tree.decode([1, 0, 1, 1, 0]) == ["a", "b", "c"]


def test_hand_built_tree_with_missing_branch_is_malformed():
    lopsided = HuffmanNode(None, 1, left=HuffmanNode("a", 1))
    tree = CodeTree(HuffmanNode(None, 2, left=lopsided, right=HuffmanNode("b", 1)))
    with pytest.raises(MalformedBitSequenceError) as exc_info:
        tree.decode([False, True])
    assert exc_info.value.position == 1


def test_hand_built_tree_with_missing_branch_can_be_walked():
    lopsided = HuffmanNode(None, 1, left=HuffmanNode("a", 1))
    tree = CodeTree(HuffmanNode(None, 2, left=lopsided, right=HuffmanNode("b", 1)))
    assert [leaf.symbol for leaf in tree.leaves()] == ["a", "b"]
    assert tree.find_path("a") == (False, False)
    assert tree.find_path("c") is None
    assert tree.encode_by_search("ab") == tree.encode("ab") == [False, False, True]


def test_skewed_frequencies_build_a_tree_deeper_than_the_recursion_limit():
    n = 1200
    tree = build({i: 2 ** i for i in range(n)})
    lengths = tree.code_lengths()
    assert len(lengths) == n
    assert max(lengths.values()) == n - 1
    assert tree.code_for(0) == (False,) * (n - 1)
    assert tree.code_for(n - 1) == (True,)
    assert [leaf.symbol for leaf in tree.leaves()][:2] == [0, 1]
    data = [0, n - 1, 5, n - 1]
    assert tree.decode(tree.encode(data)) == data


def test_tree_can_be_shared_between_threads():
    data = random_text(11, size=5000)
    tree = CodeTree.from_sequence(data)
    results = []

    def worker():
        results.append("".join(tree.decode(tree.encode(data))) == data)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert results == [True] * 4
