from typing import Iterable, List, Tuple

from huffman import MalformedBitSequenceError

def render_bits(bits: Iterable[bool]) -> str: # one character per bit, no separators
    return "".join("1" if bit else "0" for bit in bits)

def parse_bits(text: str) -> List[bool]:
    bits = []
    for position, ch in enumerate(text):
        if ch == "1":
            bits.append(True)
        elif ch == "0":
            bits.append(False)
        else:
            raise MalformedBitSequenceError(f"unexpected character {ch!r} in bit string", position)
    return bits


def pack_bits(bits: Iterable[bool]) -> Tuple[bytes, int]:
    """
    Packs bits MSB-first into bytes
    Returns (packed_bytes, pad_bits) where pad_bits is number of 0 bits added at the end
    """
    out = bytearray()
    acc = 0
    acc_bits = 0

    for bit in bits:
        acc = (acc << 1) | (1 if bit else 0)
        acc_bits += 1
        if acc_bits == 8:
            out.append(acc & 0xFF)
            acc = 0
            acc_bits = 0

    pad_bits = 0
    if acc_bits != 0:
        pad_bits = 8 - acc_bits
        acc = acc << pad_bits
        out.append(acc & 0xFF)

    return bytes(out), pad_bits


def unpack_bits(packed: bytes, pad_bits: int) -> List[bool]:
    if not 0 <= pad_bits <= 7:
        raise ValueError(f"pad_bits must be in 0..7, got {pad_bits}")
    if not packed and pad_bits:
        raise ValueError("pad_bits given for an empty buffer")

    total_bits = len(packed) * 8 - pad_bits
    bits: List[bool] = []
    for byte in packed:
        for i in range(7, -1, -1):
            if len(bits) >= total_bits:
                break
            bits.append(bool((byte >> i) & 1))
    return bits
