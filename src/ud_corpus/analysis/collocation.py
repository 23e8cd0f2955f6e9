import polars as pl

from ud_corpus.analysis.tokens import Tokens, tokens_frame

COLLOCATE_SCHEMA = {
    "term": pl.String,
    "freq_span": pl.UInt32,
    "freq_total": pl.UInt32,
    "pmi": pl.Float64,
}


def collocates(
    tokens: Tokens,
    target: str,
    window: int = 5,
    min_count: int = 1,
    sep: str = "_",
) -> pl.DataFrame:
    """
    Rank terms co-occurring with `target` by pointwise mutual information.

    A co-occurrence is any term within `window` positions left or right of an
    occurrence of `target` in the same document. With N the total number of
    tokens, PMI is log2(freq_span * N / (freq_target * freq_total)).

    :param tokens: output of `as_tokens` (optionally filtered)
    :param target: fused term string, e.g. "天_NOUN"
    :param window: span on each side of the node
    :param min_count: minimum co-occurrence count to report
    """
    if window < 1:
        raise ValueError("window must be at least one")

    df = tokens_frame(tokens, sep)
    n_total = df.height
    node_freq = df.filter(pl.col("term") == target).height
    if node_freq == 0:
        return pl.DataFrame(schema=COLLOCATE_SCHEMA)

    totals = df.group_by("term").agg(pl.len().alias("freq_total"))
    offsets = [i for i in range(-window, window + 1) if i != 0]
    look_around = [
        pl.col("term").shift(-i).over("doc_id").alias(f"lag_{i}") for i in offsets
    ]

    return (
        df.with_columns(look_around)
        .filter(pl.col("term") == target)
        .select(pl.concat_list([f"lag_{i}" for i in offsets]).alias("span"))
        .explode("span")
        .drop_nulls("span")
        .group_by("span")
        .agg(pl.len().alias("freq_span"))
        .rename({"span": "term"})
        .filter(pl.col("freq_span") >= min_count)
        .join(totals, on="term")
        .with_columns(
            (
                pl.col("freq_span")
                * n_total
                / (pl.col("freq_total") * node_freq)
            )
            .log(base=2)
            .alias("pmi")
        )
        .cast(COLLOCATE_SCHEMA)
        .select(list(COLLOCATE_SCHEMA))
        .sort(["pmi", "term"], descending=[True, False])
    )
