class ConfigurationError(ValueError):
    """Raised while building a tokenizer from invalid or inconsistent assets."""


class DecodeSpecialTokenError(ValueError):
    """Raised when strict decoding meets reserved control token ids."""

    def __init__(self, token_ids):
        self.token_ids = list(token_ids)
        super().__init__(f"Decoding 'tokens' that contain special tokens ({self.token_ids}) is not allowed.")
