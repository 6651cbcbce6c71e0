"""
Export a full tekken.json (as published with the models) into the compact
form loaded by Tekkenizer: config, compressed bpe_ranks, multimodal block.

    python -m mistral_tokenizer.import_tekken_config <url-or-path> <output.json>
"""

import argparse
import json
from pathlib import Path
from typing import Any, Dict

import requests

from .bpe import compress_ranks
from .utils import decode_base64


def read_source(source: str) -> Dict[str, Any]:
    if source.startswith(("http://", "https://")):
        resp = requests.get(source, timeout=60)
        resp.raise_for_status()
        return resp.json()
    with open(source, "r", encoding="utf-8") as f:
        return json.load(f)


def export_tekken_config(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Keep the first default_vocab_size - default_num_special_tokens vocab
    entries and compress their ranks. compress_ranks verifies the result.
    """
    config = data["config"]
    max_vocab = config["default_vocab_size"] - config["default_num_special_tokens"]
    sliced_vocab = data["vocab"][:max_vocab]

    ranks = {decode_base64(info["token_bytes"]): int(info["rank"]) for info in sliced_vocab}
    print(f"[tekken] Compressing {len(ranks)} ranks (max_vocab={max_vocab})")

    exported = {
        "config": config,
        "bpe_ranks": compress_ranks(ranks),
    }
    if data.get("multimodal") is not None:
        exported["multimodal"] = data["multimodal"]
    return exported


def main() -> None:
    ap = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    ap.add_argument("source", help="URL or path of the full tekken.json")
    ap.add_argument("output", help="where to write the compact tokenizer file")
    args = ap.parse_args()

    exported = export_tekken_config(read_source(args.source))

    out = Path(args.output)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(exported), encoding="utf-8")
    print(f"[tekken] Saved tokenizer to {out}")


if __name__ == "__main__":
    main()
