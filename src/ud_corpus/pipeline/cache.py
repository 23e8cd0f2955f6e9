from pathlib import Path
from typing import NamedTuple

import polars as pl
import spacy
import xxhash


class Chunk(NamedTuple):
    index: int
    frame: pl.DataFrame


def split_chunks(corpus: pl.DataFrame, chunk_size: int = 10) -> list[Chunk]:
    """
    Partition rows into contiguous chunks of `chunk_size`; the last may be short.

    >>> df = pl.DataFrame({"doc_id": [str(i) for i in range(25)]})
    >>> [c.frame.height for c in split_chunks(df, 10)]
    [10, 10, 5]
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be at least one")
    return [
        Chunk(index, corpus.slice(offset, chunk_size))
        for index, offset in enumerate(range(0, corpus.height, chunk_size))
    ]


def file_exists_and_complete(file_path: Path) -> bool:
    """Check if a file exists and is not 0-byte (complete)."""
    return file_path.exists() and file_path.stat().st_size > 0


def model_version(model: str) -> str:
    """Name and version of a model package or directory; spaCy version for blank pipelines."""
    if model.startswith("blank:"):
        return f"{model}-{spacy.__version__}"
    meta_path = Path(model) / "meta.json"
    if meta_path.exists():
        meta = spacy.util.load_meta(meta_path)
        return f"{meta['name']}-{meta['version']}"
    return f"{model}-{spacy.util.get_package_version(model) or 'unknown'}"


def corpus_hash(corpus: pl.DataFrame, model: str) -> str:
    """Hash the values affecting annotation output: spaCy version, model, rows."""
    hash_obj = xxhash.xxh64()
    hash_obj.update(spacy.__version__.encode())
    hash_obj.update(model.encode())
    hash_obj.update(model_version(model).encode())
    for doc_id, text in corpus.select("doc_id", "text").iter_rows():
        hash_obj.update(doc_id.encode())
        hash_obj.update(b"\x00")
        hash_obj.update(text.encode())
        hash_obj.update(b"\x00")
    return hash_obj.hexdigest()


def get_cached_path(corpus: pl.DataFrame, model: str, cache_dir: Path) -> Path:
    cache_dir = Path(cache_dir)
    cache_dir.mkdir(parents=True, exist_ok=True)
    # Model may be a filesystem path; keep only its last component in the name.
    model_name = Path(model.replace(":", "-")).name
    return cache_dir / f"tokens-{model_name}-{corpus_hash(corpus, model)}.csv"
