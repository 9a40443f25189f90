# filename: huffman_core.py

import heapq
from typing import Dict, List, NamedTuple, Sequence, Tuple

from bitarray import bitarray, frozenbitarray

ALPHABET_SIZE = 256
# k leaves + (k - 1) merges for the full byte alphabet
MAX_NODES = 2 * ALPHABET_SIZE - 1
NO_CHILD = -1


class HuffmanError(Exception):
    """Base class for errors raised while decoding an encoded artifact."""


class CorruptBitstreamError(HuffmanError):
    """The bit sequence walks off the tree."""


class TruncatedBitstreamError(CorruptBitstreamError):
    """The bit sequence ends in the middle of a codeword."""


class Node(NamedTuple):
    left: int = NO_CHILD
    right: int = NO_CHILD
    value: int = 0

    @property
    def is_leaf(self) -> bool:
        return self.left == NO_CHILD and self.right == NO_CHILD


class NodeArena:
    """Append-only, index-addressed store of tree nodes.

    Nodes are never moved or removed, so an index handed out by
    :meth:`append` stays valid for the life of the arena. The root is
    always the last node appended.
    """

    def __init__(self):
        self._nodes: List[Node] = []

    def append(self, node: Node) -> int:
        if len(self._nodes) >= MAX_NODES:
            raise OverflowError(f"arena is limited to {MAX_NODES} nodes")
        self._nodes.append(node)
        return len(self._nodes) - 1

    def __getitem__(self, index: int) -> Node:
        assert 0 <= index < len(self._nodes), index
        return self._nodes[index]

    def __len__(self):
        return len(self._nodes)

    def __iter__(self):
        return iter(self._nodes)

    @property
    def root_index(self) -> int:
        return len(self._nodes) - 1

    def freeze(self) -> Tuple[Node, ...]:
        return tuple(self._nodes)


def count_bytes(data: Sequence[int]) -> List[int]:
    # One slot per possible byte value, zero for the ones that never occur
    counts = [0] * ALPHABET_SIZE
    for byte in data:
        counts[byte] += 1
    return counts


class HuffmanLogic:
    def build_tree(self, counts: Sequence[int]) -> NodeArena:
        """Run the greedy least-count-first merge over the byte counts.

        Heap entries are ``(count, index)`` pairs, so equal counts are
        merged lowest arena index first. The first node popped becomes the
        left child of the merged node, the second the right child.
        """
        arena = NodeArena()
        priority_queue = []
        for value, count in enumerate(counts):
            if count:
                index = arena.append(Node(value=value))
                priority_queue.append((count, index))

        # Zero and one symbol are trivial cases the merge loop can't handle
        if not priority_queue:
            arena.append(Node(value=0))
            return arena
        if len(priority_queue) == 1:
            # Pass-through root so the only symbol gets the codeword "1"
            arena.append(Node(left=NO_CHILD, right=0))
            return arena

        heapq.heapify(priority_queue)
        while len(priority_queue) > 1:
            left_count, left = heapq.heappop(priority_queue)
            right_count, right = heapq.heappop(priority_queue)
            merged = arena.append(Node(left=left, right=right))
            heapq.heappush(priority_queue, (left_count + right_count, merged))

        assert priority_queue[0][1] == arena.root_index
        return arena

    def generate_codes(self, nodes, root=None) -> Dict[int, frozenbitarray]:
        """Map every leaf value to the bits of its root-to-leaf path."""
        if root is None:
            root = len(nodes) - 1
        codes = {}
        if root == NO_CHILD:
            return codes
        path = bitarray()

        def walk(index):
            node = nodes[index]
            if node.is_leaf:
                codes[node.value] = frozenbitarray(path)
                return
            if node.left != NO_CHILD:
                path.append(0)
                walk(node.left)
                path.pop()
            if node.right != NO_CHILD:
                path.append(1)
                walk(node.right)
                path.pop()

        walk(root)
        return codes

    def encoded_length(self, counts: Sequence[int], codes) -> int:
        # Sum of per-byte codeword lengths, grouped by byte value
        return sum(
            count * len(codes[value]) for value, count in enumerate(counts) if count
        )

    def encode_bits(self, data, codes, length=None) -> bitarray:
        bits = bitarray()
        # The empty-input tree has an empty codeword, which bitarray rejects
        if len(data):
            bits.encode(codes, data)
        if length is not None:
            assert len(bits) == length, (len(bits), length)
        return bits
