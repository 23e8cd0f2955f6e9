import re
import warnings

import polars as pl
import pytest

from ud_corpus.analysis.dfm import build_dfm, group_from_doc_id, tokens_select


def test_build_dfm_counts(tagged_tokens):
    dfm = build_dfm(tagged_tokens)
    assert dfm.ndoc == 6
    assert dfm.groups() == ["news", "weibo"]
    wide = dfm.to_wide()
    assert wide["doc_id"].to_list() == list(tagged_tokens)
    assert wide.filter(wide["doc_id"] == "weibo4")["我_PRON"].item() == 1
    assert wide.filter(wide["doc_id"] == "news3")["我_PRON"].item() == 0
    totals = dfm.term_totals()
    row = totals.filter(pl.col("term") == "政府_NOUN")
    assert row["frequency"].item() == 2 and row["docfreq"].item() == 2


@pytest.mark.parametrize("pattern", ["_punct$", "^我_", "_(NOUN|verb)$"])
def test_removed_terms_never_counted(tagged_tokens, pattern):
    dfm = build_dfm(tagged_tokens, pattern=pattern, selection="remove")
    rx = re.compile(pattern, re.IGNORECASE)
    assert dfm.featnames()
    assert not [t for t in dfm.featnames() if rx.search(t)]


def test_keep_selection(tagged_tokens):
    dfm = build_dfm(tagged_tokens, pattern="_noun$", selection="keep")
    assert all(t.endswith("_NOUN") for t in dfm.featnames())


def test_case_sensitive_selection(tagged_tokens):
    kept = tokens_select(tagged_tokens, "_noun$", case_insensitive=False)
    assert all(not seq for seq in kept.values())


def test_bad_selection(tagged_tokens):
    with pytest.raises(ValueError, match="selection"):
        tokens_select(tagged_tokens, "x", selection="drop")


def test_subset_and_trim(tagged_tokens):
    dfm = build_dfm(tagged_tokens)
    news = dfm.subset("news")
    assert news.ndoc == 3
    assert set(news.counts["doc_id"]) == {"news1", "news2", "news3"}
    trimmed = news.trim(min_termfreq=2)
    assert trimmed.featnames() == ["。_PUNCT", "政府_NOUN", "政策_NOUN"]
    assert trimmed.ndoc == 3
    with pytest.raises(ValueError, match="Unknown group"):
        dfm.subset("blog")


def test_combine(tagged_tokens):
    dfm = build_dfm(tagged_tokens)
    both = dfm.subset("news").combine(dfm.subset("weibo"))
    assert both.ndoc == dfm.ndoc and both.total == dfm.total
    with pytest.raises(ValueError, match="share documents"):
        dfm.combine(dfm.subset("news"))


def test_group_from_doc_id():
    assert group_from_doc_id("weibo11") == "weibo"
    with pytest.raises(ValueError):
        group_from_doc_id("weibo", r"\d+")


def test_trim_and_subset_without_deprecation_warnings(tagged_tokens):
    dfm = build_dfm(tagged_tokens)
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        trimmed = dfm.subset(["news", "weibo"]).trim(min_termfreq=3)
    assert trimmed.featnames() == ["。_PUNCT", "我_PRON"]
