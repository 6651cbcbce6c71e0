from enum import Enum
from typing import Tuple, Union


class TokenizerVersion(str, Enum):
    V1 = "v1"  # vocab_size = 32000
    V2 = "v2"  # vocab_size = 32768, adds [INST] / [/INST] control tokens
    V3 = "v3"  # vocab_size = 32768 (sentencepiece) or 131072 (tekken), function calling


TEKKEN_VERSIONS: Tuple[TokenizerVersion, ...] = (TokenizerVersion.V3,)


def is_valid_tokenizer_version(version) -> bool:
    return version in {v.value for v in TokenizerVersion}


class MistralModel(str, Enum):
    CODESTRAL_22B = "codestral-22b"
    MISTRAL_EMBED = "mistral-embed"
    MISTRAL_LARGE = "mistral-large"
    MISTRAL_NEMO = "mistral-nemo"
    MISTRAL_SMALL = "mistral-small"
    OPEN_MISTRAL_7B = "open-mistral-7b"
    OPEN_MIXTRAL_8X22B = "open-mixtral-8x22b"
    OPEN_MIXTRAL_8X7B = "open-mixtral-8x7b"


_MODEL_VERSIONS = {
    MistralModel.MISTRAL_EMBED: TokenizerVersion.V1,
    MistralModel.OPEN_MISTRAL_7B: TokenizerVersion.V1,
    MistralModel.OPEN_MIXTRAL_8X7B: TokenizerVersion.V1,
    MistralModel.MISTRAL_LARGE: TokenizerVersion.V2,
    MistralModel.MISTRAL_SMALL: TokenizerVersion.V2,
    MistralModel.CODESTRAL_22B: TokenizerVersion.V3,
    MistralModel.MISTRAL_NEMO: TokenizerVersion.V3,
    MistralModel.OPEN_MIXTRAL_8X22B: TokenizerVersion.V3,
}

_TEKKEN_MODELS = {MistralModel.MISTRAL_NEMO}


def get_tokenizer_version_for_model(model: Union[MistralModel, str]) -> TokenizerVersion:
    """Map a model name to the tokenizer version it was trained with.

    Raises:
        ValueError: if the model name is unknown.
    """
    return _MODEL_VERSIONS[MistralModel(model)]


def should_use_tekken_for_model(model: Union[MistralModel, str]) -> bool:
    return MistralModel(model) in _TEKKEN_MODELS


class SpecialTokens:
    UNK = "<unk>"
    BOS = "<s>"
    EOS = "</s>"
    BEGIN_INST = "[INST]"
    END_INST = "[/INST]"
    BEGIN_TOOLS = "[AVAILABLE_TOOLS]"
    END_TOOLS = "[/AVAILABLE_TOOLS]"
    BEGIN_TOOL_RESULTS = "[TOOL_RESULTS]"
    END_TOOL_RESULTS = "[/TOOL_RESULTS]"
    TOOL_CALLS = "[TOOL_CALLS]"
    IMG = "[IMG]"
    PAD = "<pad>"
    IMG_BREAK = "[IMG_BREAK]"
    IMG_END = "[IMG_END]"
    PREFIX = "[PREFIX]"
    MIDDLE = "[MIDDLE]"
    SUFFIX = "[SUFFIX]"
