from collections.abc import Sequence
from typing import NamedTuple, Optional

import polars as pl

from ud_corpus.schemas import TAG_COLUMNS, validate_token_table


class TaggedToken(NamedTuple):
    """A token paired with its tag; flattened only when handed to counting."""

    token: str
    tag: str = ""

    def fuse(self, sep: str = "_") -> str:
        """
        >>> TaggedToken("天", "NOUN").fuse()
        '天_NOUN'
        >>> TaggedToken("天").fuse()
        '天'
        >>> TaggedToken("a_b", "X").fuse()
        Traceback (most recent call last):
        ...
        ValueError: Separator '_' occurs in token 'a_b'
        """
        if sep in self.token:
            raise ValueError(f"Separator {sep!r} occurs in token {self.token!r}")
        if not self.tag:
            return self.token
        if sep in self.tag:
            raise ValueError(f"Separator {sep!r} occurs in tag {self.tag!r}")
        return f"{self.token}{sep}{self.tag}"

    @classmethod
    def split(cls, text: str, sep: str = "_") -> "TaggedToken":
        """
        >>> TaggedToken.split("天_NOUN")
        TaggedToken(token='天', tag='NOUN')
        """
        token, found, tag = text.rpartition(sep)
        if not found:
            return cls(text)
        return cls(token, tag)


Tokens = dict[str, list[TaggedToken]]


def as_tokens(
    table: pl.DataFrame,
    tag: Optional[str] = "upos",
    doc_ids: Optional[Sequence[str]] = None,
) -> Tokens:
    """
    Reshape a token-record table into one ordered token sequence per document.

    Documents keep their first-appearance order in `table`; tokens are ordered
    by sentence id then token id. Pass the corpus `doc_ids` to fix the
    document order and keep documents without tokens as empty sequences.

    :param table: token-record table
    :param tag: "upos", "xpos", or None for bare tokens
    :param doc_ids: documents to return, in order
    """
    if tag is not None and tag not in TAG_COLUMNS:
        raise ValueError(f"tag must be one of {TAG_COLUMNS} or None, got {tag!r}")
    validate_token_table(table)
    tag_expr = pl.col(tag) if tag is not None else pl.lit("")
    grouped = (
        table.with_row_index("_row")
        .with_columns(
            pl.col("_row").min().over("doc_id").alias("_doc_order"),
            tag_expr.alias("tag"),
        )
        .sort(["_doc_order", "sentence_id", "token_id"], maintain_order=True)
        .group_by("doc_id", maintain_order=True)
        .agg(pl.col("token"), pl.col("tag"))
    )
    tokens = {
        doc_id: [TaggedToken(t, g) for t, g in zip(toks, tags)]
        for doc_id, toks, tags in grouped.iter_rows()
    }
    if doc_ids is None:
        return tokens
    unknown = set(tokens) - set(doc_ids)
    if unknown:
        raise ValueError(f"Token table has documents not in doc_ids: {sorted(unknown)[:5]}")
    return {doc_id: tokens.get(doc_id, []) for doc_id in doc_ids}


def fuse_tokens(tokens: Tokens, sep: str = "_") -> dict[str, list[str]]:
    """Flatten tagged tokens to `token<sep>tag` strings."""
    return {doc_id: [t.fuse(sep) for t in seq] for doc_id, seq in tokens.items()}


def tokens_frame(tokens: Tokens, sep: str = "_") -> pl.DataFrame:
    """Long form of fused token sequences: doc_id, position, term."""
    fused = fuse_tokens(tokens, sep)
    return pl.DataFrame(
        {
            "doc_id": [doc_id for doc_id, seq in fused.items() for _ in seq],
            "position": [i for seq in fused.values() for i in range(len(seq))],
            "term": [term for seq in fused.values() for term in seq],
        },
        schema={"doc_id": pl.String, "position": pl.UInt32, "term": pl.String},
    )
