import math
from typing import Dict, Hashable, Iterable

def compute_frequencies(sequence: Iterable[Hashable]) -> Dict[Hashable, int]: # sequence: str, bytes or any iterable of hashable symbols
    freqs: Dict[Hashable, int] = {}
    for symbol in sequence:
        freqs[symbol] = freqs.get(symbol, 0) + 1 # dict keeps first-appearance order, build() relies on it for ties
    return freqs

def total(frequencies: Dict[Hashable, int]) -> int:
    return sum(frequencies.values())

def entropy(frequencies: Dict[Hashable, int]) -> float:
    """
    Shannon entropy in bits per symbol, the lower bound for any prefix code
    """
    n = total(frequencies)
    if n == 0:
        return 0.0
    h = 0.0
    for count in frequencies.values():
        p = count / n
        h -= p * math.log2(p)
    return h
