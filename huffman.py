from __future__ import annotations

import heapq
from typing import BinaryIO, Dict, List, Optional, Tuple

from errors import CodeTooLong, EmptyInput, HuffmanIOError

MAX_CODE_LENGTH = 255 # code length is stored in a single header byte
SYNTHETIC_SYMBOL = -1 # sibling leaf added when the input holds a single distinct byte
CHUNK_SIZE = 64 * 1024


class HuffmanNode: # Node for Huffman tree
    def __init__(self, symbol: Optional[int], frequency: int, left: Optional["HuffmanNode"] = None, right: Optional["HuffmanNode"] = None):
        self.symbol = symbol    # byte, SYNTHETIC_SYMBOL, or None for internal nodes
        self.frequency = frequency
        self.left = left
        self.right = right

    @property
    def is_leaf(self) -> bool:
        return self.symbol is not None

    def __repr__(self) -> str:
        if self.is_leaf:
            return f"HuffmanNode(symbol={self.symbol}, frequency={self.frequency})"
        return f"HuffmanNode(frequency={self.frequency})"


def freq_table(data: bytes) -> Dict[int, int]:
    ft: Dict[int, int] = {}
    for b in data:
        ft[b] = ft.get(b, 0) + 1
    return ft


def count_frequencies(stream: BinaryIO) -> Dict[int, int]:
    """
    One pass over a binary stream, counting each byte value
    Symbols that never occur are left out of the table
    """
    counts = [0] * 256
    while True:
        try:
            chunk = stream.read(CHUNK_SIZE)
        except OSError as e:
            raise HuffmanIOError(f"read failed: {e}") from e
        if not chunk:
            break
        for b in chunk:
            counts[b] += 1
    return {symbol: n for symbol, n in enumerate(counts) if n}


def build_huffman_tree(frequency_table: Dict[int, int]) -> HuffmanNode: # frequency_table: dict of symbol -> frequency
    leaves = [HuffmanNode(symbol, frequency) for symbol, frequency in sorted(frequency_table.items()) if frequency > 0]
    if not leaves:
        raise EmptyInput("cannot build a Huffman tree from empty input")

    # Single symbol: pair it with an inert leaf so it still gets the code "0"
    if len(leaves) == 1:
        only = leaves[0]
        return HuffmanNode(None, only.frequency, only, HuffmanNode(SYNTHETIC_SYMBOL, 0))

    # Heap entries are (frequency, insertion order, node); the counter breaks
    # ties so the same input always yields the same tree
    priority_queue: List[Tuple[int, int, HuffmanNode]] = [(leaf.frequency, order, leaf) for order, leaf in enumerate(leaves)]
    heapq.heapify(priority_queue)
    order = len(priority_queue)

    while len(priority_queue) > 1:
        _, _, left = heapq.heappop(priority_queue)
        _, _, right = heapq.heappop(priority_queue)
        merged_node = HuffmanNode(None, left.frequency + right.frequency, left, right)
        heapq.heappush(priority_queue, (merged_node.frequency, order, merged_node))
        order += 1

    return priority_queue[0][2] # root of the tree


def generate_huffman_codes(root: HuffmanNode) -> Dict[int, str]:
    """
    Walk the tree depth-first, '0' for left and '1' for right
    Raises CodeTooLong if any code does not fit the header's length byte
    """
    codes: Dict[int, str] = {}
    stack: List[Tuple[HuffmanNode, str]] = [(root, '')]

    while stack:
        node, current_code = stack.pop()
        if node.is_leaf:
            if node.symbol == SYNTHETIC_SYMBOL:
                continue
            if len(current_code) > MAX_CODE_LENGTH:
                raise CodeTooLong(f"code for symbol {node.symbol} is {len(current_code)} bits, limit is {MAX_CODE_LENGTH}")
            codes[node.symbol] = current_code
            continue

        # push right first so left subtrees are visited first
        if node.right is not None:
            stack.append((node.right, current_code + '1'))
        if node.left is not None:
            stack.append((node.left, current_code + '0'))

    return codes # return the mapping of symbols to their corresponding Huffman codes


def build_code_table(frequency_table: Dict[int, int]) -> Tuple[HuffmanNode, Dict[int, str]]:
    root = build_huffman_tree(frequency_table)
    return root, generate_huffman_codes(root)
