import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from .base import TokenId, Tokenizer
from .bpe import BytePairEncoding
from .commons import SpecialTokens, is_valid_tokenizer_version
from .errors import ConfigurationError, DecodeSpecialTokenError
from .utils import group_runs

logger = logging.getLogger(__name__)

# Order fixes the ids of the control tokens.
SPECIAL_TOKENS: Tuple[str, ...] = (
    SpecialTokens.UNK,
    SpecialTokens.BOS,
    SpecialTokens.EOS,
    SpecialTokens.BEGIN_INST,
    SpecialTokens.END_INST,
    SpecialTokens.BEGIN_TOOLS,
    SpecialTokens.END_TOOLS,
    SpecialTokens.BEGIN_TOOL_RESULTS,
    SpecialTokens.END_TOOL_RESULTS,
    SpecialTokens.TOOL_CALLS,
    SpecialTokens.IMG,
    SpecialTokens.PAD,
    SpecialTokens.IMG_BREAK,
    SpecialTokens.IMG_END,
    SpecialTokens.PREFIX,
    SpecialTokens.MIDDLE,
    SpecialTokens.SUFFIX,
)


class SpecialTokenPolicy(Enum):
    """What to do with special tokens met while decoding."""

    IGNORE = 0
    KEEP = 1
    RAISE = 2


@dataclass(frozen=True)
class TekkenConfig:
    pattern: str
    num_vocab_tokens: int
    default_vocab_size: int
    default_num_special_tokens: int
    version: str


@dataclass(frozen=True)
class MultimodalConfig:
    image_patch_size: int
    max_image_size: int


def _build_special_tokens(num_special_tokens: int) -> Tuple[str, ...]:
    if num_special_tokens < len(SPECIAL_TOKENS):
        raise ConfigurationError(
            f"default_num_special_tokens={num_special_tokens} is smaller than the "
            f"{len(SPECIAL_TOKENS)} named special tokens"
        )
    fillers = tuple(f"<SPECIAL_{i}>" for i in range(num_special_tokens - len(SPECIAL_TOKENS)))
    return SPECIAL_TOKENS + fillers


class Tekkenizer(Tokenizer):
    """
    Regex-segmented byte-level BPE with a reserved window of control ids.

    Ids [0, num_special_tokens) are special tokens; content ids produced by
    the byte-pair engine are shifted up by num_special_tokens.
    """

    def __init__(self, data: Mapping[str, Any], is_multimodal: bool = False) -> None:
        """
        Args:
            data: parsed tekken document with "config", "bpe_ranks" and an
                optional "multimodal" block.
            is_multimodal: require the multimodal block to be present.
        """
        try:
            raw_config = data["config"]
            self.config = TekkenConfig(
                pattern=raw_config["pattern"],
                num_vocab_tokens=int(raw_config["num_vocab_tokens"]),
                default_vocab_size=int(raw_config["default_vocab_size"]),
                default_num_special_tokens=int(raw_config["default_num_special_tokens"]),
                version=raw_config["version"],
            )
            bpe_ranks = data["bpe_ranks"]
        except (KeyError, TypeError, ValueError) as err:
            raise ConfigurationError(f"Malformed tekken config: {err!r}") from err

        if not is_valid_tokenizer_version(self.config.version):
            raise ConfigurationError(f"Invalid tokenizer version: {self.config.version}")

        multimodal = data.get("multimodal")
        if is_multimodal and not multimodal:
            raise ConfigurationError("Multimodal configuration is required for multimodal tokenizers")
        self.multimodal: Optional[MultimodalConfig] = None
        if multimodal:
            try:
                self.multimodal = MultimodalConfig(
                    image_patch_size=int(multimodal["image_patch_size"]),
                    max_image_size=int(multimodal["max_image_size"]),
                )
            except (KeyError, TypeError, ValueError) as err:
                raise ConfigurationError(f"Malformed multimodal config: {err!r}") from err

        self._special_tokens = _build_special_tokens(self.config.default_num_special_tokens)

        try:
            self._model = BytePairEncoding.from_compressed(self.config.pattern, bpe_ranks)
        except ValueError as err:
            raise ConfigurationError(f"Cannot build byte-pair model: {err}") from err

        max_vocab = self.config.default_vocab_size - self.num_special_tokens
        if self._model.n_vocab < max_vocab:
            raise ConfigurationError(
                f"Rank table has {self._model.n_vocab} tokens, {max_vocab} needed for "
                f"default_vocab_size={self.config.default_vocab_size}"
            )

        try:
            self._vocab = tuple(self._id_to_piece(i) for i in range(self.config.default_vocab_size))
        except ValueError as err:
            raise ConfigurationError(f"Rank table does not cover the vocabulary: {err}") from err
        logger.info(
            "Loaded tekken tokenizer %s: vocab_size=%d, num_special_tokens=%d",
            self.config.version,
            self.vocab_size,
            self.num_special_tokens,
        )

    @classmethod
    def from_file(cls, path: Union[str, Path], is_multimodal: bool = False) -> "Tekkenizer":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as err:
            raise ConfigurationError(f"Cannot read tekken file {path}: {err}") from err
        return cls(data, is_multimodal=is_multimodal)

    @property
    def num_special_tokens(self) -> int:
        return len(self._special_tokens)

    @property
    def special_tokens(self) -> Tuple[str, ...]:
        return self._special_tokens

    @property
    def vocab_size(self) -> int:
        return self.config.default_vocab_size

    @property
    def vocab(self) -> Tuple[str, ...]:
        return self._vocab

    @property
    def bos_id(self) -> TokenId:
        return SPECIAL_TOKENS.index(SpecialTokens.BOS)

    @property
    def eos_id(self) -> TokenId:
        return SPECIAL_TOKENS.index(SpecialTokens.EOS)

    def decode_all(self, token_ids: Sequence[TokenId], policy: SpecialTokenPolicy) -> List[str]:
        """Decode each maximal run of special / non-special ids, keeping their order."""
        num_special = self.num_special_tokens
        decoded: List[str] = []

        for is_special, run in group_runs(token_ids, key=lambda t: t < num_special):
            if not is_special:
                decoded.append(self._model.decode(t - num_special for t in run))
            elif policy is SpecialTokenPolicy.RAISE:
                raise DecodeSpecialTokenError(run)
            elif policy is SpecialTokenPolicy.KEEP:
                decoded.extend(self._special_tokens[t] for t in run)
            elif policy is SpecialTokenPolicy.IGNORE:
                continue
            else:
                raise ValueError(f"Unknown special token policy: {policy!r}")

        return decoded

    def _id_to_piece(self, token_id: TokenId) -> str:
        return self.decode_all([token_id], SpecialTokenPolicy.KEEP)[0]

    def encode(self, text: str, add_bos: bool = True, add_eos: bool = False) -> List[TokenId]:
        token_ids = [t + self.num_special_tokens for t in self._model.encode(text)]
        if add_bos:
            token_ids.insert(0, self.bos_id)
        if add_eos:
            token_ids.append(self.eos_id)
        return token_ids

    def decode(self, token_ids: Sequence[TokenId]) -> str:
        if token_ids and token_ids[0] == self.bos_id:
            token_ids = token_ids[1:]
        return "".join(self.decode_all(token_ids, SpecialTokenPolicy.RAISE))
