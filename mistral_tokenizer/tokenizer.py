import os
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from .base import TokenId, Tokenizer
from .commons import (
    TEKKEN_VERSIONS,
    MistralModel,
    TokenizerVersion,
    get_tokenizer_version_for_model,
    should_use_tekken_for_model,
)
from .errors import ConfigurationError
from .sentence_piece import SentencePieceBPETokenizer
from .tekken import Tekkenizer

DATA_DIR_ENV = "MISTRAL_TOKENIZER_DATA"
TEKKEN_FILENAME = "240718.json"


def default_data_dir() -> Path:
    env = os.environ.get(DATA_DIR_ENV)
    if env:
        return Path(env)
    return Path(__file__).resolve().parent / "data"


def tokenizer_data_path(version: TokenizerVersion, use_tekken: bool, data_dir: Optional[Path] = None) -> Path:
    """Location of the assets: a directory for sentencepiece, a JSON file for tekken."""
    base = Path(data_dir) if data_dir is not None else default_data_dir()
    if use_tekken:
        if version not in TEKKEN_VERSIONS:
            raise ConfigurationError(f"No tekken tokenizer exists for version {version.value}")
        return base / "tekken" / TEKKEN_FILENAME
    return base / "bpe" / version.value


class MistralTokenizer(Tokenizer):
    """Selects the sentencepiece or tekken implementation and delegates to it."""

    def __init__(
        self,
        version: Union[TokenizerVersion, str],
        use_tekken: bool = False,
        is_multimodal: bool = False,
        data_dir: Optional[Union[str, Path]] = None,
    ) -> None:
        try:
            version = TokenizerVersion(version)
        except ValueError as err:
            raise ConfigurationError(f"Invalid tokenizer version: {version}") from err

        path = tokenizer_data_path(version, use_tekken, Path(data_dir) if data_dir is not None else None)
        self.version = version

        self._tokenizer: Tokenizer
        if use_tekken:
            self._tokenizer = Tekkenizer.from_file(path, is_multimodal=is_multimodal)
        else:
            if is_multimodal:
                raise ConfigurationError("Multimodal tokenization requires the tekken tokenizer")
            self._tokenizer = SentencePieceBPETokenizer.from_files(path / "vocab.bin", path / "merges.bin")

    @property
    def tokenizer(self) -> Tokenizer:
        return self._tokenizer

    @property
    def vocab_size(self) -> int:
        return self._tokenizer.vocab_size

    @property
    def vocab(self) -> Tuple[str, ...]:
        return self._tokenizer.vocab

    @property
    def bos_id(self) -> TokenId:
        return self._tokenizer.bos_id

    @property
    def eos_id(self) -> TokenId:
        return self._tokenizer.eos_id

    def encode(self, text: str, add_bos: bool = True, add_eos: bool = False) -> List[TokenId]:
        return self._tokenizer.encode(text, add_bos=add_bos, add_eos=add_eos)

    def decode(self, token_ids: Sequence[TokenId]) -> str:
        return self._tokenizer.decode(token_ids)


def get_tokenizer(
    version: Union[TokenizerVersion, str],
    use_tekken: bool = False,
    is_multimodal: bool = False,
    data_dir: Optional[Union[str, Path]] = None,
) -> MistralTokenizer:
    return MistralTokenizer(version, use_tekken, is_multimodal, data_dir)


def get_tokenizer_for_model(
    model: Union[MistralModel, str],
    is_multimodal: bool = False,
    data_dir: Optional[Union[str, Path]] = None,
) -> MistralTokenizer:
    """Tokenizer used by a Mistral model, e.g. get_tokenizer_for_model("mistral-nemo")."""
    return get_tokenizer(
        get_tokenizer_version_for_model(model),
        use_tekken=should_use_tekken_for_model(model),
        is_multimodal=is_multimodal,
        data_dir=data_dir,
    )
