from typing import Optional

import polars as pl

from ud_corpus.analysis.dfm import DocumentTermMatrix


def frequency_table(
    dfm: DocumentTermMatrix, by_group: bool = False, n: Optional[int] = None
) -> pl.DataFrame:
    """
    Term frequencies with rank (ties share the lowest rank) and document frequency.

    :param by_group: rank terms separately within each document group
    :param n: keep only the top `n` rows (per group if `by_group`)
    """
    keys = ["group", "term"] if by_group else ["term"]
    counts = dfm.counts.join(dfm.docvars, on="doc_id") if by_group else dfm.counts
    table = counts.group_by(keys).agg(
        pl.col("count").sum().alias("frequency"),
        pl.col("doc_id").n_unique().cast(pl.UInt32).alias("docfreq"),
    )
    rank = pl.col("frequency").rank(method="min", descending=True).cast(pl.UInt32)
    if by_group:
        table = table.with_columns(rank.over("group").alias("rank")).sort(
            ["group", "rank", "term"]
        )
    else:
        table = table.with_columns(rank.alias("rank")).sort(["rank", "term"])
    if n is not None:
        table = (
            table.group_by("group", maintain_order=True).head(n)
            if by_group
            else table.head(n)
        )
    return table.select(["term", "frequency", "rank", "docfreq", *keys[:-1]])
