import polars as pl
import pytest

from ud_corpus.pipeline.annotator import annotate_texts, doc_to_records
from ud_corpus.schemas import TOKEN_SCHEMA


def test_sentence_reconstitutes_text(nlp):
    text = "祝你一天过得愉快."
    table = annotate_texts(nlp, ["weibo1"], [text])
    assert table.collect_schema() == TOKEN_SCHEMA
    ordered = table.sort(["sentence_id", "token_id"])
    assert "".join(ordered["token"]) == text


def test_ids_are_one_based_and_heads_local(nlp):
    table = annotate_texts(
        nlp, ["d1", "d2"], ["今天天气很好。股市上涨了。", "我爱吃火锅。"]
    )
    assert table["doc_id"].unique(maintain_order=True).to_list() == ["d1", "d2"]
    for (doc_id, sentence_id), sent in table.group_by(
        ["doc_id", "sentence_id"], maintain_order=True
    ):
        assert sent["token_id"].to_list() == list(range(1, sent.height + 1))
        heads = set(sent["head_token_id"].to_list()) - {0}
        assert heads <= set(sent["token_id"].to_list())
    d1_sentences = table.filter(pl.col("doc_id") == "d1")["sentence_id"].unique()
    assert sorted(d1_sentences.to_list()) == [1, 2]


def test_empty_text(nlp):
    table = annotate_texts(nlp, ["e1"], [""])
    assert table.is_empty()
    assert table.collect_schema() == TOKEN_SCHEMA


def test_mismatched_lengths(nlp):
    with pytest.raises(ValueError, match="document ids"):
        annotate_texts(nlp, ["a", "b"], ["x"])


def test_doc_without_sentences():
    import spacy

    doc = spacy.blank("zh")("你好")
    records = doc_to_records(doc, "x1")
    assert [(r.sentence_id, r.token_id, r.head_token_id) for r in records] == [
        (1, 1, 0),
        (1, 2, 0),
    ]


def test_head_ids_follow_parse():
    import spacy
    from spacy.tokens import Doc

    doc = Doc(
        spacy.blank("zh").vocab,
        words=["我", "爱", "火锅", "。", "好", "。"],
        spaces=[False] * 6,
        heads=[1, 1, 1, 1, 4, 4],
        deps=["nsubj", "ROOT", "obj", "punct", "ROOT", "punct"],
    )
    records = doc_to_records(doc, "w1")
    assert [(r.sentence_id, r.token_id, r.token, r.head_token_id) for r in records] == [
        (1, 1, "我", 2),
        (1, 2, "爱", 0),
        (1, 3, "火锅", 2),
        (1, 4, "。", 2),
        (2, 1, "好", 0),
        (2, 2, "。", 1),
    ]
    assert [r.dep_rel for r in records][:2] == ["nsubj", "ROOT"]
