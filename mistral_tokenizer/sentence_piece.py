import logging
from pathlib import Path
from typing import Dict, List, Sequence, Tuple, Union

from .base import TokenId, Tokenizer
from .codec import decode_vocabulary, decompress_merges, merge_key
from .commons import SpecialTokens
from .errors import ConfigurationError
from .priority_queue import PriorityQueue
from .utils import hex_to_utf8_byte, is_byte_token, utf8_byte_to_hex

logger = logging.getLogger(__name__)

# Spaces are represented by the thick underscore, and one is prepended to every prompt.
SPACE_MARKER = "▁"

NIL = -1

# (left node, merged string)
MergeCandidate = Tuple[int, str]


class SentencePieceBPETokenizer(Tokenizer):
    """
    Sentencepiece-compatible BPE tokenizer (versions v1, v2, v3).

    Characters missing from the vocabulary fall back to byte tokens named
    "<0xHH>". Merges are applied greedily by rank, equal ranks left to right.
    """

    def __init__(self, vocab_payload: str, merges_payload: str) -> None:
        """
        Args:
            vocab_payload: base64 contents of vocab.bin.
            merges_payload: base64 contents of merges.bin.
        """
        self._vocab = decode_vocabulary(vocab_payload)
        self._vocab_by_string: Dict[str, TokenId] = {s: i for i, s in enumerate(self._vocab)}
        self._merges = decompress_merges(merges_payload, self._vocab)

        for token in (SpecialTokens.UNK, SpecialTokens.BOS, SpecialTokens.EOS):
            if token not in self._vocab_by_string:
                raise ConfigurationError(f"Vocabulary has no {token!r} token")

        self._unk_id = self._vocab_by_string[SpecialTokens.UNK]
        self._bos_id = self._vocab_by_string[SpecialTokens.BOS]
        self._eos_id = self._vocab_by_string[SpecialTokens.EOS]

    @classmethod
    def from_files(
        cls,
        vocab_filepath: Union[str, Path],
        merges_filepath: Union[str, Path],
    ) -> "SentencePieceBPETokenizer":
        try:
            vocab_payload = Path(vocab_filepath).read_text(encoding="utf-8")
            merges_payload = Path(merges_filepath).read_text(encoding="utf-8")
        except OSError as err:
            raise ConfigurationError(f"Cannot read tokenizer assets: {err}") from err
        return cls(vocab_payload, merges_payload)

    @property
    def vocab(self) -> Tuple[str, ...]:
        return self._vocab

    @property
    def vocab_size(self) -> int:
        return len(self._vocab)

    @property
    def bos_id(self) -> TokenId:
        return self._bos_id

    @property
    def eos_id(self) -> TokenId:
        return self._eos_id

    @property
    def unk_id(self) -> TokenId:
        return self._unk_id

    def _map_characters_to_token_ids(self, text: str) -> List[TokenId]:
        token_ids: List[TokenId] = []
        altered = SPACE_MARKER + text.replace(" ", SPACE_MARKER)

        # str iterates by code point, so astral characters stay whole.
        for c in altered:
            token_id = self._vocab_by_string.get(c)
            if token_id is not None:
                token_ids.append(token_id)
                continue

            missing = []
            for byte in c.encode("utf-8"):
                byte_id = self._vocab_by_string.get(utf8_byte_to_hex(byte))
                if byte_id is not None:
                    token_ids.append(byte_id)
                    continue

                # The vocabulary is expected to cover every byte.
                missing.append(utf8_byte_to_hex(byte))
                if token_ids:
                    token_ids[-1] = self._unk_id
                else:
                    token_ids.append(self._unk_id)

            if missing:
                logger.warning("Encountered unknown character %r (missing byte tokens %s)", c, ", ".join(missing))

        return token_ids

    def _merge(self, token_ids: List[TokenId]) -> List[TokenId]:
        """
        Apply merges to the initial token sequence until none is possible.

        The chain lives in an arena of parallel lists addressed by node index.
        A queued candidate is stale when its left node or that node's current
        successor was deleted. A successor replaced by a clone carries the same
        token, so the candidate stays valid.
        """
        n = len(token_ids)
        ids = list(token_ids)
        orig_pos = list(range(n))
        prev = [i - 1 for i in range(n)]
        next_ = [i + 1 for i in range(n)]
        next_[-1] = NIL
        deleted = [False] * n
        head = 0

        vocab = self._vocab
        queue: PriorityQueue[MergeCandidate] = PriorityQueue()

        def add_to_merge_queue(left: int) -> None:
            right = next_[left]
            if right == NIL:
                return
            rank = self._merges.get(merge_key(vocab, ids[left], ids[right]))
            if rank is None:
                return
            # Rank decides first; the fractional position keeps equal ranks left to right.
            priority = rank + orig_pos[left] / n
            queue.push(priority, (left, vocab[ids[left]] + vocab[ids[right]]))

        def new_node(pos: int, token_id: TokenId, before: int, after: int) -> int:
            ids.append(token_id)
            orig_pos.append(pos)
            prev.append(before)
            next_.append(after)
            deleted.append(False)
            return len(ids) - 1

        for i in range(n - 1):
            add_to_merge_queue(i)

        while queue:
            left, merged = queue.pop()
            right = next_[left]

            if deleted[left] or right == NIL or deleted[right]:
                continue

            deleted[left] = True
            deleted[right] = True

            before = prev[left]
            if before != NIL:
                # Queued candidates may still reference the old predecessor.
                deleted[before] = True
                clone = new_node(orig_pos[before], ids[before], prev[before], next_[before])
                prev[left] = clone
                if prev[clone] != NIL:
                    next_[prev[clone]] = clone
                else:
                    head = clone
                before = clone

            merged_id = self._vocab_by_string.get(merged)
            if merged_id is None:
                logger.debug("Merge product %r has a rank but no vocabulary entry; merge skipped", merged)
                continue

            after = next_[right]
            node = new_node(orig_pos[left], merged_id, before, after)

            if before != NIL:
                next_[before] = node
                add_to_merge_queue(before)
            else:
                head = node

            if after != NIL:
                prev[after] = node
                add_to_merge_queue(node)

        merged_ids: List[TokenId] = []
        node = head
        while node != NIL:
            merged_ids.append(ids[node])
            node = next_[node]
        return merged_ids

    def encode(self, text: str, add_bos: bool = True, add_eos: bool = False) -> List[TokenId]:
        # Empty input yields no tokens at all, BOS/EOS flags included.
        if not text:
            return []

        token_ids = self._map_characters_to_token_ids(text)
        if add_bos:
            token_ids.insert(0, self._bos_id)
        if add_eos:
            token_ids.append(self._eos_id)

        return self._merge(token_ids)

    def decode(self, token_ids: Sequence[TokenId]) -> str:
        start = 1 if token_ids and token_ids[0] == self._bos_id else 0

        buf = bytearray()
        for token_id in token_ids[start:]:
            if token_id < 0:
                raise IndexError(f"Token id {token_id} is out of range")
            piece = self._vocab[token_id]
            if is_byte_token(piece):
                buf.append(hex_to_utf8_byte(piece))
            else:
                buf.extend(piece.encode("utf-8"))

        text = buf.decode("utf-8", errors="replace").replace(SPACE_MARKER, " ")
        # The artificial leading space is removed at string level: runs of
        # spaces may have been merged into a single token.
        return text[1:]
