"""
Parallel annotation: split the corpus into chunks, annotate each chunk in its
own worker process, and combine the chunk tables.

Every worker loads the parsing model itself; nothing is shared between
workers. A failing chunk fails the whole run.

Configuration can be overridden with environment variables:
- UD_WORKERS=N: number of worker processes (default: os.cpu_count()).
"""

import logging
import os
from collections.abc import Iterable, Sequence
from concurrent.futures import ProcessPoolExecutor, as_completed
from operator import attrgetter
from pathlib import Path
from typing import NamedTuple

import polars as pl
from tqdm import tqdm

from ud_corpus import load_ud_nlp
from ud_corpus.io.corpus import read_token_table, write_token_table
from ud_corpus.pipeline.annotator import annotate_texts
from ud_corpus.pipeline.cache import (
    Chunk,
    file_exists_and_complete,
    get_cached_path,
    split_chunks,
)
from ud_corpus.schemas import empty_token_table, validate_token_table


class ChunkResult(NamedTuple):
    index: int
    table: pl.DataFrame


def _default_workers() -> int:
    return max(1, int(os.getenv("UD_WORKERS", str(os.cpu_count() or 1))))


def annotate_chunk(chunk: Chunk, model: str) -> ChunkResult:
    """Worker entry point: load `model` and annotate every document in `chunk`."""
    nlp = load_ud_nlp(model)
    logging.debug(
        f"[pid {os.getpid()}] annotating chunk {chunk.index} ({chunk.frame.height} documents)"
    )
    table = annotate_texts(
        nlp, chunk.frame["doc_id"].to_list(), chunk.frame["text"].to_list()
    )
    return ChunkResult(chunk.index, table)


def combine_chunks(
    results: Iterable[ChunkResult],
    doc_order: Sequence[str] | None = None,
) -> pl.DataFrame:
    """
    Concatenate chunk tables in chunk order, independent of completion order.

    If `doc_order` is given, documents are additionally sorted into that order
    (unlisted documents last), then by sentence id and token id.
    """
    results = sorted(results, key=attrgetter("index"))
    if not results:
        return empty_token_table()
    table = pl.concat(
        [validate_token_table(r.table) for r in results], how="vertical"
    )
    if doc_order is None:
        return table

    order = pl.DataFrame({"doc_id": list(doc_order)}, schema={"doc_id": pl.String})
    if order["doc_id"].is_duplicated().any():
        raise ValueError("doc_order contains duplicate document ids")
    return (
        table.join(order.with_row_index("_order"), on="doc_id", how="left")
        .sort(
            ["_order", "sentence_id", "token_id"],
            nulls_last=True,
            maintain_order=True,
        )
        .drop("_order")
    )


def annotate_corpus(
    corpus: pl.DataFrame,
    model: str,
    chunk_size: int = 10,
    workers: int | None = None,
) -> pl.DataFrame:
    """
    Annotate `corpus` (columns doc_id, text) with `workers` processes.

    :param corpus: documents, e.g. from `sample_corpus`
    :param model: spaCy model name or path, loaded once per chunk in the worker
    :param chunk_size: documents per chunk
    :param workers: pool size; 1 annotates in the calling process
    :return: token-record table in corpus document order
    """
    workers = _default_workers() if workers is None else workers
    if workers < 1:
        raise ValueError("workers must be at least one")
    chunks = split_chunks(corpus, chunk_size)
    logging.info(
        f"Annotating {corpus.height} documents in {len(chunks)} chunks with {workers} workers"
    )

    if workers == 1:
        results = [
            annotate_chunk(chunk, model) for chunk in tqdm(chunks, desc="Chunk")
        ]
    else:
        results = []
        with ProcessPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(annotate_chunk, c, model) for c in chunks]
            try:
                for future in tqdm(
                    as_completed(futures), total=len(futures), desc="Chunk"
                ):
                    results.append(future.result())
            except BaseException:
                executor.shutdown(wait=False, cancel_futures=True)
                raise

    return combine_chunks(results, corpus["doc_id"].to_list())


def cached_annotate_corpus(
    corpus: pl.DataFrame,
    model: str,
    cache_dir: Path = Path("cache"),
    chunk_size: int = 10,
    workers: int | None = None,
) -> pl.DataFrame:
    """
    Like `annotate_corpus`, but reuse a token table cached under `cache_dir`.

    The cache key covers the spaCy version, the model and every document.
    """
    cache_path = get_cached_path(corpus, model, cache_dir)
    if file_exists_and_complete(cache_path):
        logging.info(f"Reading cached token table {cache_path}")
        return read_token_table(cache_path)
    table = annotate_corpus(corpus, model, chunk_size=chunk_size, workers=workers)
    write_token_table(table, cache_path)
    return table
