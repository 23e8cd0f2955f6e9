"""
Document-term matrix and token filtering.

The matrix is stored in long form (doc_id, term, count) next to a table of
document variables (doc_id, group). Every operation returns a new matrix.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Literal, Optional

import polars as pl

from ud_corpus.analysis.tokens import TaggedToken, Tokens, tokens_frame

DEFAULT_GROUP_PATTERN = r"^(.*?)\d+$"

COUNTS_SCHEMA = {"doc_id": pl.String, "term": pl.String, "count": pl.UInt32}


def group_from_doc_id(doc_id: str, pattern: str = DEFAULT_GROUP_PATTERN) -> str:
    """
    Extract the group label from a document id.

    The first capture group is used if the pattern has one, else the whole match.

    >>> group_from_doc_id("news12")
    'news'
    >>> group_from_doc_id("weibo3", r"^[a-z]+")
    'weibo'
    """
    m = re.search(pattern, doc_id)
    if m is None:
        raise ValueError(f"Group pattern {pattern!r} does not match {doc_id!r}")
    return m.group(1) if m.re.groups else m.group(0)


def tokens_select(
    tokens: Tokens,
    pattern: str,
    selection: Literal["keep", "remove"] = "keep",
    case_insensitive: bool = True,
    sep: str = "_",
) -> Tokens:
    """
    Keep or remove tokens whose fused `token<sep>tag` string matches `pattern`.

    >>> toks = {"a1": [TaggedToken("天", "NOUN"), TaggedToken("。", "PUNCT")]}
    >>> tokens_select(toks, "_punct$", selection="remove")["a1"]
    [TaggedToken(token='天', tag='NOUN')]
    """
    if selection not in ("keep", "remove"):
        raise ValueError(f"selection must be 'keep' or 'remove', got {selection!r}")
    rx = re.compile(pattern, re.IGNORECASE if case_insensitive else 0)
    keep = selection == "keep"
    return {
        doc_id: [t for t in seq if bool(rx.search(t.fuse(sep))) == keep]
        for doc_id, seq in tokens.items()
    }


@dataclass(frozen=True)
class DocumentTermMatrix:
    counts: pl.DataFrame
    docvars: pl.DataFrame

    @property
    def ndoc(self) -> int:
        return self.docvars.height

    @property
    def nfeat(self) -> int:
        return self.counts["term"].n_unique()

    @property
    def total(self) -> int:
        return int(self.counts["count"].sum())

    def featnames(self) -> list[str]:
        return sorted(self.counts["term"].unique().to_list())

    def groups(self) -> list[str]:
        return self.docvars["group"].unique(maintain_order=True).to_list()

    def subset_docs(self, doc_ids: Iterable[str]) -> "DocumentTermMatrix":
        ids = list(doc_ids)
        return DocumentTermMatrix(
            counts=self.counts.filter(pl.col("doc_id").is_in(ids)),
            docvars=self.docvars.filter(pl.col("doc_id").is_in(ids)),
        )

    def subset(self, group: str | Iterable[str]) -> "DocumentTermMatrix":
        """Documents whose group is `group` (or one of several groups)."""
        wanted = [group] if isinstance(group, str) else list(group)
        unknown = set(wanted) - set(self.groups())
        if unknown:
            raise ValueError(
                f"Unknown group(s) {sorted(unknown)}; available: {self.groups()}"
            )
        docs = self.docvars.filter(pl.col("group").is_in(wanted))["doc_id"].to_list()
        return self.subset_docs(docs)

    def term_totals(self) -> pl.DataFrame:
        """Total count and document frequency per term."""
        return self.counts.group_by("term").agg(
            pl.col("count").sum().alias("frequency"),
            pl.col("doc_id").n_unique().alias("docfreq"),
        )

    def trim(
        self, min_termfreq: Optional[int] = None, min_docfreq: Optional[int] = None
    ) -> "DocumentTermMatrix":
        """Drop terms whose total count (or document frequency) is below a threshold."""
        totals = self.term_totals()
        if min_termfreq is not None:
            totals = totals.filter(pl.col("frequency") >= min_termfreq)
        if min_docfreq is not None:
            totals = totals.filter(pl.col("docfreq") >= min_docfreq)
        kept = self.counts.filter(pl.col("term").is_in(totals["term"].to_list()))
        logging.debug(
            f"trim: kept {kept['term'].n_unique()} of {self.nfeat} terms"
        )
        return DocumentTermMatrix(counts=kept, docvars=self.docvars)

    def combine(self, other: "DocumentTermMatrix") -> "DocumentTermMatrix":
        """Stack the documents of two matrices."""
        overlap = set(self.docvars["doc_id"]) & set(other.docvars["doc_id"])
        if overlap:
            raise ValueError(f"Matrices share documents: {sorted(overlap)[:5]}")
        return DocumentTermMatrix(
            counts=pl.concat([self.counts, other.counts]),
            docvars=pl.concat([self.docvars, other.docvars]),
        )

    def to_wide(self) -> pl.DataFrame:
        """One row per document, one column per term, zeros filled in."""
        if self.counts.is_empty():
            return self.docvars.select("doc_id")
        wide = self.counts.pivot(
            on="term", index="doc_id", values="count", sort_columns=True
        )
        return (
            self.docvars.select("doc_id")
            .with_row_index("_order")
            .join(wide, on="doc_id", how="left")
            .sort("_order")
            .drop("_order")
            .fill_null(0)
        )


def build_dfm(
    tokens: Tokens,
    group_pattern: str = DEFAULT_GROUP_PATTERN,
    sep: str = "_",
    pattern: Optional[str] = None,
    selection: Literal["keep", "remove"] = "remove",
    case_insensitive: bool = True,
) -> DocumentTermMatrix:
    """
    Count fused tokens per document.

    If `pattern` is given, matching tokens are kept or removed before
    counting, so filtered tokens never contribute counts.
    Documents are the keys of `tokens`; build them with
    `as_tokens(table, doc_ids=...)` to count documents that have no tokens.

    :param tokens: output of `as_tokens`
    :param group_pattern: regex extracting the group label from the doc id
    :param sep: separator between token and tag in term strings
    """
    if pattern is not None:
        tokens = tokens_select(
            tokens, pattern, selection=selection, case_insensitive=case_insensitive, sep=sep
        )
    counts = (
        tokens_frame(tokens, sep)
        .group_by(["doc_id", "term"], maintain_order=True)
        .agg(pl.len().cast(pl.UInt32).alias("count"))
    )
    docvars = pl.DataFrame(
        {
            "doc_id": list(tokens),
            "group": [group_from_doc_id(d, group_pattern) for d in tokens],
        },
        schema={"doc_id": pl.String, "group": pl.String},
    )
    dfm = DocumentTermMatrix(counts=counts.cast(COUNTS_SCHEMA), docvars=docvars)
    logging.info(f"Built matrix: {dfm.ndoc} documents x {dfm.nfeat} terms")
    return dfm
