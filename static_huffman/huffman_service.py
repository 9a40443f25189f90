# // filename: huffman_service.py

import logging
import os
from dataclasses import dataclass
from typing import Tuple

from bitarray import frozenbitarray

from huffman_core import (
    NO_CHILD,
    CorruptBitstreamError,
    HuffmanLogic,
    Node,
    TruncatedBitstreamError,
    count_bytes,
)

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name, default):
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class HuffmanConfig:
    strict_decode: bool = False
    log_stats: bool = True

    @classmethod
    def from_env(cls) -> "HuffmanConfig":
        return cls(
            strict_decode=_env_flag("HUFFMAN_STRICT_DECODE", cls.strict_decode),
            log_stats=_env_flag("HUFFMAN_LOG_STATS", cls.log_stats),
        )


@dataclass(frozen=True)
class CompressionStats:
    original_size: int
    encoded_bits: int
    distinct_symbols: int
    node_count: int
    bits_per_symbol: float
    ratio: float


def as_byte_view(data):
    """Normalize any supported input into a sequence of ints 0-255.

    Accepts ``bytes``, ``bytearray``, ``str`` (its UTF-8 bytes), objects
    exporting the buffer protocol (their raw memory, byte by byte), and
    iterables of ints.
    """
    if isinstance(data, (bytes, bytearray)):
        return data
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, int):
        raise TypeError("cannot encode a bare int; wrap it in a sequence")
    try:
        return memoryview(data).tobytes()
    except TypeError:
        pass
    try:
        # ValueError for ints outside 0-255 propagates as is
        return bytes(data)
    except TypeError as e:
        raise TypeError(
            f"cannot encode object of type {type(data).__name__!r}"
        ) from e


class Encoded:
    """A Huffman tree plus the bits of the input encoded under it.

    Built once by :meth:`encode` and never changed afterwards, so the same
    instance can be decoded any number of times, from any thread.
    """

    __slots__ = ("_nodes", "_bits", "_original_size")

    def __init__(self, nodes, bits, original_size=None):
        nodes = tuple(Node(*node) for node in nodes)
        if not nodes:
            raise ValueError("an encoded artifact needs at least one node")
        object.__setattr__(self, "_nodes", nodes)
        object.__setattr__(self, "_bits", frozenbitarray(bits))
        object.__setattr__(self, "_original_size", original_size)

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    @classmethod
    def encode(cls, data, logic=None) -> "Encoded":
        data = as_byte_view(data)
        logic = logic if logic is not None else HuffmanLogic()
        counts = count_bytes(data)
        arena = logic.build_tree(counts)
        codes = logic.generate_codes(arena, arena.root_index)
        length = logic.encoded_length(counts, codes)
        bits = logic.encode_bits(data, codes, length)
        return cls(arena.freeze(), bits, len(data))

    @property
    def nodes(self) -> Tuple[Node, ...]:
        return self._nodes

    @property
    def bits(self) -> frozenbitarray:
        return self._bits

    @property
    def root_index(self) -> int:
        return len(self._nodes) - 1

    @property
    def bit_length(self) -> int:
        return len(self._bits)

    @property
    def original_size(self):
        return self._original_size

    def code_table(self):
        return HuffmanLogic().generate_codes(self._nodes, self.root_index)

    def decode(self, strict=False) -> bytes:
        """Walk the tree bit by bit, emitting a byte at every leaf.

        Bits left over after the last complete codeword are dropped, or
        raise :class:`TruncatedBitstreamError` when ``strict`` is set.
        """
        nodes = self._nodes
        root = self.root_index
        out = bytearray()
        if nodes[root].is_leaf:
            # Empty input; there is no codeword to follow
            return bytes(out)

        index = root
        for position, bit in enumerate(self._bits):
            parent = index
            index = nodes[parent].right if bit else nodes[parent].left
            if index == NO_CHILD:
                raise CorruptBitstreamError(
                    f"bit {position} leads to a missing child of node {parent}"
                )
            if nodes[index].is_leaf:
                out.append(nodes[index].value)
                index = root

        if index != root:
            if strict:
                raise TruncatedBitstreamError(
                    f"bit sequence ends inside a codeword after {len(out)} symbols"
                )
            logger.warning(
                "Dropping incomplete trailing codeword after %d decoded symbols",
                len(out),
            )
        return bytes(out)

    def decode_text(self, encoding="utf-8", strict=False) -> str:
        return self.decode(strict=strict).decode(encoding)

    def __eq__(self, other):
        if not isinstance(other, Encoded):
            return NotImplemented
        return self._nodes == other._nodes and self._bits == other._bits

    def __hash__(self):
        return hash((self._nodes, self._bits))

    def __repr__(self):
        return f"Encoded(nodes={len(self._nodes)}, bits={len(self._bits)})"


class HuffmanService:
    def __init__(self, config=None):
        self.config = config if config is not None else HuffmanConfig()
        self.logic = HuffmanLogic()

    def compress(self, data) -> Encoded:
        encoded = Encoded.encode(data, self.logic)
        if self.config.log_stats:
            stats = self.stats(encoded)
            logger.debug(
                "Encoded %d bytes into %d bits (%d distinct symbols, %d nodes)",
                stats.original_size,
                stats.encoded_bits,
                stats.distinct_symbols,
                stats.node_count,
            )
        return encoded

    def decompress(self, encoded: Encoded) -> bytes:
        return encoded.decode(strict=self.config.strict_decode)

    def stats(self, encoded: Encoded) -> CompressionStats:
        size = encoded.original_size
        if size is None:
            size = len(encoded.decode())
        distinct = sum(1 for node in encoded.nodes if node.is_leaf) if size else 0
        bits = encoded.bit_length
        return CompressionStats(
            original_size=size,
            encoded_bits=bits,
            distinct_symbols=distinct,
            node_count=len(encoded.nodes),
            bits_per_symbol=bits / size if size else 0.0,
            ratio=((bits + 7) // 8) / size if size else 0.0,
        )


def encode(data) -> Encoded:
    return Encoded.encode(data)


def decode(encoded: Encoded, strict=False) -> bytes:
    return encoded.decode(strict=strict)
