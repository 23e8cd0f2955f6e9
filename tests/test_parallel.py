import math

import orjson
import polars as pl
import pytest

from ud_corpus.io.corpus import load_corpus, sample_corpus
from ud_corpus.pipeline.cache import corpus_hash, get_cached_path, split_chunks
from ud_corpus.pipeline.parallel import (
    ChunkResult,
    annotate_chunk,
    annotate_corpus,
    cached_annotate_corpus,
    combine_chunks,
)


@pytest.fixture
def sample(corpus_csv):
    return sample_corpus(load_corpus(corpus_csv), 10, seed=123)


@pytest.mark.parametrize("size,chunk_size", [(20, 10), (23, 10), (3, 10), (7, 1)])
def test_split_chunks(size, chunk_size):
    df = pl.DataFrame({"doc_id": [f"d{i}" for i in range(size)]})
    chunks = split_chunks(df, chunk_size)
    assert len(chunks) == math.ceil(size / chunk_size)
    assert [c.index for c in chunks] == list(range(len(chunks)))
    ids = [d for c in chunks for d in c.frame["doc_id"]]
    assert sorted(ids) == sorted(df["doc_id"]) and len(ids) == len(set(ids))


def test_split_chunks_invalid():
    with pytest.raises(ValueError):
        split_chunks(pl.DataFrame({"doc_id": ["a"]}), 0)


def test_combine_ignores_completion_order(sample, model):
    chunks = split_chunks(sample, 7)
    results = [annotate_chunk(c, model) for c in chunks]
    forward = combine_chunks(results, sample["doc_id"].to_list())
    backward = combine_chunks(list(reversed(results)), sample["doc_id"].to_list())
    assert forward.equals(backward)
    assert set(forward["doc_id"]) == {d for r in results for d in r.table["doc_id"]}
    assert forward["doc_id"].unique(maintain_order=True).to_list() == sample["doc_id"].to_list()


def test_combine_empty():
    assert combine_chunks([]).is_empty()


def test_combine_rejects_duplicate_order(model):
    corpus = pl.DataFrame({"doc_id": ["a1"], "text": ["好。"]})
    table = annotate_chunk(split_chunks(corpus)[0], model).table
    with pytest.raises(ValueError, match="duplicate"):
        combine_chunks([ChunkResult(0, table)], ["a1", "a1"])


def test_annotate_corpus_in_process_matches_pool(sample, model):
    serial = annotate_corpus(sample, model, chunk_size=10, workers=1)
    pooled = annotate_corpus(sample, model, chunk_size=10, workers=2)
    assert serial.equals(pooled)
    assert set(serial["doc_id"]) == set(sample["doc_id"])


def test_annotate_corpus_failure_is_all_or_nothing(sample):
    with pytest.raises(OSError):
        annotate_corpus(sample, "/nonexistent/model", chunk_size=5, workers=2)


def test_cached_annotate_corpus(sample, model, tmp_path):
    first = cached_annotate_corpus(sample, model, cache_dir=tmp_path, workers=1)
    path = get_cached_path(sample, model, tmp_path)
    assert path.exists()
    second = cached_annotate_corpus(sample, model, cache_dir=tmp_path, workers=1)
    assert first.equals(second)


def test_cache_key_tracks_model_version(sample, tmp_path, monkeypatch):
    import spacy

    monkeypatch.setattr(spacy.util, "get_package_version", lambda name: "3.7.0")
    old = corpus_hash(sample, "zh_core_web_sm")
    monkeypatch.setattr(spacy.util, "get_package_version", lambda name: "3.8.0")
    assert corpus_hash(sample, "zh_core_web_sm") != old

    model_dir = tmp_path / "my_model"
    model_dir.mkdir()
    meta = {"lang": "zh", "name": "my_model", "version": "1.0.0"}
    (model_dir / "meta.json").write_bytes(orjson.dumps(meta))
    before = corpus_hash(sample, str(model_dir))
    (model_dir / "meta.json").write_bytes(orjson.dumps({**meta, "version": "1.1.0"}))
    assert corpus_hash(sample, str(model_dir)) != before
