import logging
from pathlib import Path

import numpy as np
import orjson
import polars as pl

from ud_corpus.schemas import Document, coerce_token_table, validate_token_table

CORPUS_COLUMNS = ["doc_id", "type", "text"]


def _read_jsonl(path: Path) -> pl.DataFrame:
    with open(path, "rb") as f:
        records = [orjson.loads(line) for line in f if line.strip()]
    return pl.DataFrame(records)


def load_corpus(
    path: Path,
    text_col: str = "text",
    type_col: str = "type",
) -> pl.DataFrame:
    """
    Read a corpus of raw documents with a type label.

    `.jsonl` files are read line by line, `.tsv` files as tab-separated and
    anything else as comma-separated. The document id is the type label
    followed by the 1-based row number in the file.

    :param path: corpus file
    :param text_col: column holding the raw document text
    :param type_col: column holding the document type label
    :return: DataFrame with columns doc_id, type, text
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path!s}")

    if path.suffix == ".jsonl":
        df = _read_jsonl(path)
    else:
        separator = "\t" if path.suffix == ".tsv" else ","
        df = pl.read_csv(path, separator=separator, infer_schema=False)

    missing = {text_col, type_col} - set(df.columns)
    if missing:
        raise ValueError(f"Corpus {path} missing required columns: {sorted(missing)}")

    corpus = (
        df.select(
            pl.col(type_col).cast(pl.String).alias("type"),
            pl.col(text_col).cast(pl.String).fill_null("").alias("text"),
        )
        .with_row_index("row", offset=1)
        .with_columns(
            (pl.col("type") + pl.col("row").cast(pl.String)).alias("doc_id")
        )
        .select(CORPUS_COLUMNS)
    )
    for row in corpus.iter_rows(named=True):
        Document.model_validate(row)
    logging.info(
        f"Loaded {corpus.height} documents of {corpus['type'].n_unique()} types from {path}"
    )
    return corpus


def sample_corpus(corpus: pl.DataFrame, n: int, seed: int = 123) -> pl.DataFrame:
    """
    Sample `n` documents per type, reproducibly for a given seed and row order.

    One random generator is seeded once and consumed type by type, in the
    order types first appear in `corpus`.

    >>> corpus = pl.DataFrame({
    ...     "doc_id": ["a1", "a2", "b3"], "type": ["a", "a", "b"], "text": ["x", "y", "z"]
    ... })
    >>> sample_corpus(corpus, 1, seed=1).height
    2
    >>> sample_corpus(corpus, 2)
    Traceback (most recent call last):
    ...
    ValueError: Type 'b' has 1 documents, fewer than the requested sample of 2
    """
    if n < 1:
        raise ValueError("n must be at least one")
    rng = np.random.default_rng(seed)
    parts = []
    for label in corpus["type"].unique(maintain_order=True):
        group = corpus.filter(pl.col("type") == label)
        if group.height < n:
            raise ValueError(
                f"Type {label!r} has {group.height} documents, fewer than the requested sample of {n}"
            )
        idx = rng.choice(group.height, size=n, replace=False)
        parts.append(group[idx.tolist()])
    sample = pl.concat(parts).select(CORPUS_COLUMNS)
    logging.info(f"Sampled {sample.height} documents (n={n} per type, seed={seed})")
    return sample


def write_token_table(table: pl.DataFrame, path: Path) -> None:
    """Persist a token-record table as CSV."""
    validate_token_table(table).write_csv(path)
    logging.info(f"Wrote {table.height} token records to {path}")


def read_token_table(path: Path) -> pl.DataFrame:
    """Read a token-record table written by `write_token_table`."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path!s}")
    df = pl.read_csv(path, infer_schema=False)
    return validate_token_table(coerce_token_table(df))
