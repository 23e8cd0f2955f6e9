import logging
from typing import Iterable, Optional

import polars as pl
from scipy.stats import chi2 as _chi2

from ud_corpus.analysis.dfm import DocumentTermMatrix

KEYNESS_COLUMNS = [
    "term",
    "n_target",
    "n_reference",
    "rf_target",
    "rf_reference",
    "G2",
    "p",
    "log_ratio",
]


def _term_counts(dfm: DocumentTermMatrix, name: str) -> pl.DataFrame:
    return dfm.counts.group_by("term").agg(
        pl.col("count").sum().cast(pl.Float64).alias(name)
    )


def keyness_table(
    target: DocumentTermMatrix, reference: DocumentTermMatrix
) -> pl.DataFrame:
    """
    Compare term frequencies in a target and a reference matrix.

    G2 is the log-likelihood statistic, signed positive when the term is
    relatively more frequent in the target. `p` is its chi-squared (1 df)
    tail probability. `log_ratio` is log2 of the ratio of relative
    frequencies, with a zero count replaced by 0.5. Relative frequencies are
    per million tokens. Swapping target and reference flips the sign of G2
    and log_ratio.

    :return: one row per term in either matrix, sorted by G2 descending
    """
    total_target = target.total
    total_reference = reference.total
    if total_target == 0 or total_reference == 0:
        raise ValueError(
            f"Cannot compare empty matrices (target={total_target}, reference={total_reference} tokens)"
        )
    total = total_target + total_reference

    a = pl.col("n_target")
    b = pl.col("n_reference")
    expected_a = (a + b) * (total_target / total)
    expected_b = (a + b) * (total_reference / total)

    kw_df = (
        _term_counts(target, "n_target")
        .join(
            _term_counts(reference, "n_reference"),
            on="term",
            how="full",
            coalesce=True,
        )
        .fill_null(0.0)
        .with_columns(
            pl.when(a > 0).then(a * (a / expected_a).log()).otherwise(0.0).alias("L1"),
            pl.when(b > 0).then(b * (b / expected_b).log()).otherwise(0.0).alias("L2"),
            (a / total_target * 1e6).alias("rf_target"),
            (b / total_reference * 1e6).alias("rf_reference"),
        )
        .with_columns(
            (pl.col("L1") + pl.col("L2")).mul(2).abs().alias("G2_abs"),
            (
                pl.when(a > 0).then(a).otherwise(0.5).truediv(total_target)
                / pl.when(b > 0).then(b).otherwise(0.5).truediv(total_reference)
            )
            .log(base=2)
            .alias("log_ratio"),
        )
        .with_columns(
            pl.when(a / total_target > b / total_reference)
            .then(pl.col("G2_abs"))
            .when(a / total_target < b / total_reference)
            .then(pl.col("G2_abs").neg())
            .otherwise(0.0)
            .alias("G2")
        )
    )
    kw_df = kw_df.with_columns(
        pl.Series("p", _chi2.sf(kw_df["G2_abs"].to_numpy(), 1), dtype=pl.Float64)
    )
    return (
        kw_df.with_columns(
            pl.col("n_target").cast(pl.UInt32), pl.col("n_reference").cast(pl.UInt32)
        )
        .select(KEYNESS_COLUMNS)
        .sort(["G2", "term"], descending=[True, False])
    )


def keyness_by_group(
    dfm: DocumentTermMatrix,
    target: str | Iterable[str],
    reference: Optional[str | Iterable[str]] = None,
    min_termfreq: Optional[int] = None,
) -> pl.DataFrame:
    """
    Keyness of the `target` group(s) against `reference` (default: all others).

    Each subset is trimmed to `min_termfreq` on its own before the comparison.
    """
    target_groups = [target] if isinstance(target, str) else list(target)
    if reference is None:
        reference_groups = [g for g in dfm.groups() if g not in target_groups]
    else:
        reference_groups = [reference] if isinstance(reference, str) else list(reference)
    if set(target_groups) & set(reference_groups):
        raise ValueError("Target and reference groups must be disjoint")
    if not reference_groups:
        raise ValueError(f"No reference group left besides {target_groups}")

    target_dfm = dfm.subset(target_groups)
    reference_dfm = dfm.subset(reference_groups)
    if min_termfreq is not None:
        target_dfm = target_dfm.trim(min_termfreq=min_termfreq)
        reference_dfm = reference_dfm.trim(min_termfreq=min_termfreq)
    logging.info(
        f"Keyness {target_groups} ({target_dfm.total} tokens) vs {reference_groups} ({reference_dfm.total} tokens)"
    )
    return keyness_table(target_dfm, reference_dfm)
