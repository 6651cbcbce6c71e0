from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple

TokenId = int


class Tokenizer(ABC):
    """Capability shared by the sentencepiece and tekken tokenizers."""

    @property
    @abstractmethod
    def vocab_size(self) -> int:
        """Vocabulary size."""

    @property
    @abstractmethod
    def vocab(self) -> Tuple[str, ...]:
        """All tokens of the vocabulary as strings, indexed by id."""

    @property
    @abstractmethod
    def bos_id(self) -> TokenId:
        """Id of the beginning-of-string token."""

    @property
    @abstractmethod
    def eos_id(self) -> TokenId:
        """Id of the end-of-string token."""

    @abstractmethod
    def encode(self, text: str, add_bos: bool = True, add_eos: bool = False) -> List[TokenId]:
        """String to token ids."""

    @abstractmethod
    def decode(self, token_ids: Sequence[TokenId]) -> str:
        """Token ids to string."""
