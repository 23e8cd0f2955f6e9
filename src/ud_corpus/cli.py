"""
ud-corpus: UD annotation of document corpora and keyness/collocation statistics.

Usage:
  ud-corpus annotate [OPTIONS] CORPUS OUT_CSV
  ud-corpus keyness [OPTIONS] TOKENS_CSV TARGET OUT_CSV
  ud-corpus collocates [OPTIONS] TOKENS_CSV TERM OUT_CSV
  ud-corpus frequency [OPTIONS] TOKENS_CSV OUT_CSV

Examples:
  ud-corpus annotate corpus.csv tokens.csv --sample 100 --seed 123 -v
  ud-corpus annotate corpus.csv tokens.csv --model zh_core_web_trf --workers 4
  ud-corpus keyness tokens.csv news keyness.csv --remove '_(punct|num)$'
  ud-corpus collocates tokens.csv 天_NOUN collocates.csv --window 5
  ud-corpus frequency tokens.csv freq.csv --by-group
"""

import logging
from pathlib import Path
from typing import Optional

import typer

from ud_corpus.analysis.collocation import collocates as compute_collocates
from ud_corpus.analysis.dfm import build_dfm, tokens_select
from ud_corpus.analysis.frequency import frequency_table
from ud_corpus.analysis.keyness import keyness_by_group
from ud_corpus.analysis.tokens import as_tokens
from ud_corpus.config import PipelineConfig
from ud_corpus.io.corpus import (
    load_corpus,
    read_token_table,
    sample_corpus,
    write_token_table,
)

app = typer.Typer(help=__doc__, no_args_is_help=True)

VERBOSE_OPTION = typer.Option(
    0,
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (-v for INFO, -vv for DEBUG)",
)
CONFIG_OPTION = typer.Option(
    None, "--config", "-c", help="YAML file with pipeline settings"
)


def setup_logging(verbose: int):
    """Set up logging based on verbosity level."""
    if verbose == 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:  # verbose >= 2
        level = logging.DEBUG

    logging.basicConfig(level=level, format="%(levelname)s:%(name)s:%(message)s")


def _load_tokens(tokens_csv: Path, config: PipelineConfig, remove: Optional[str]):
    tokens = as_tokens(read_token_table(tokens_csv), tag=config.tag)
    if remove:
        tokens = tokens_select(tokens, remove, selection="remove", sep=config.sep)
    return tokens


@app.command("annotate", help="Sample a corpus, parse it in parallel and write tokens.")
def annotate(
    corpus: Path = typer.Argument(..., help="CSV/TSV/JSONL corpus with type and text"),
    out_csv: Path = typer.Argument(..., help="Output CSV for the token-record table"),
    model: Optional[str] = typer.Option(None, help="spaCy model name or path"),
    sample: Optional[int] = typer.Option(
        None, "--sample", "-s", help="Documents to sample per type (default: all)"
    ),
    seed: Optional[int] = typer.Option(None, help="Sampling seed"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1),
    chunk_size: Optional[int] = typer.Option(None, "--chunk-size", min=1),
    text_col: str = typer.Option("text", help="Text column name"),
    type_col: str = typer.Option("type", help="Type label column name"),
    cache_dir: Optional[Path] = typer.Option(
        None, help="Reuse/store token tables in this directory"
    ),
    config_file: Optional[Path] = CONFIG_OPTION,
    verbose: int = VERBOSE_OPTION,
) -> None:
    """Load, sample, annotate and persist a corpus."""
    setup_logging(verbose)
    from ud_corpus.pipeline.parallel import annotate_corpus, cached_annotate_corpus

    config = PipelineConfig.load(config_file)
    overrides = {
        "model": model,
        "sample_size": sample,
        "seed": seed,
        "workers": workers,
        "chunk_size": chunk_size,
    }
    config = config.model_copy(
        update={k: v for k, v in overrides.items() if v is not None}
    )

    docs = load_corpus(corpus, text_col=text_col, type_col=type_col)
    if config.sample_size is not None:
        docs = sample_corpus(docs, config.sample_size, seed=config.seed)

    if cache_dir is not None:
        table = cached_annotate_corpus(
            docs,
            config.model,
            cache_dir=cache_dir,
            chunk_size=config.chunk_size,
            workers=config.workers,
        )
    else:
        table = annotate_corpus(
            docs, config.model, chunk_size=config.chunk_size, workers=config.workers
        )
    write_token_table(table, out_csv)
    typer.echo(f"{docs.height} documents, {table.height} tokens -> {out_csv}")


@app.command("keyness", help="Keyness of one document group against the rest.")
def keyness(
    tokens_csv: Path = typer.Argument(..., help="Token CSV from `annotate`"),
    target: str = typer.Argument(..., help="Target group label"),
    out_csv: Path = typer.Argument(..., help="Output CSV for the keyness table"),
    reference: Optional[list[str]] = typer.Option(
        None, "--reference", "-r", help="Reference group(s) (default: all others)"
    ),
    remove: Optional[str] = typer.Option(
        None, help="Regex of fused tokens to drop before counting"
    ),
    min_termfreq: Optional[int] = typer.Option(None, "--min-termfreq", min=1),
    config_file: Optional[Path] = CONFIG_OPTION,
    verbose: int = VERBOSE_OPTION,
) -> None:
    """Write a keyness table comparing TARGET with the reference groups."""
    setup_logging(verbose)
    config = PipelineConfig.load(config_file)
    tokens = _load_tokens(tokens_csv, config, remove)
    dfm = build_dfm(tokens, group_pattern=config.group_pattern, sep=config.sep)
    table = keyness_by_group(
        dfm,
        target,
        reference=reference or None,
        min_termfreq=min_termfreq if min_termfreq is not None else config.min_termfreq,
    )
    table.write_csv(out_csv)
    typer.echo(f"{table.height} terms -> {out_csv}")


@app.command("collocates", help="PMI collocates of a term.")
def collocates(
    tokens_csv: Path = typer.Argument(..., help="Token CSV from `annotate`"),
    term: str = typer.Argument(..., help="Target term, fused with its tag if tagged"),
    out_csv: Path = typer.Argument(..., help="Output CSV for the collocates"),
    window: Optional[int] = typer.Option(None, min=1),
    min_count: int = typer.Option(1, "--min-count", min=1),
    remove: Optional[str] = typer.Option(
        None, help="Regex of fused tokens to drop first"
    ),
    config_file: Optional[Path] = CONFIG_OPTION,
    verbose: int = VERBOSE_OPTION,
) -> None:
    """Write PMI collocates of TERM."""
    setup_logging(verbose)
    config = PipelineConfig.load(config_file)
    tokens = _load_tokens(tokens_csv, config, remove)
    table = compute_collocates(
        tokens,
        term,
        window=window or config.window,
        min_count=min_count,
        sep=config.sep,
    )
    table.write_csv(out_csv)
    typer.echo(f"{table.height} collocates -> {out_csv}")


@app.command("frequency", help="Term frequency table.")
def frequency(
    tokens_csv: Path = typer.Argument(..., help="Token CSV from `annotate`"),
    out_csv: Path = typer.Argument(..., help="Output CSV for the frequency table"),
    by_group: bool = typer.Option(False, "--by-group", help="Rank within each group"),
    top: Optional[int] = typer.Option(None, "--top", "-n", min=1),
    remove: Optional[str] = typer.Option(
        None, help="Regex of fused tokens to drop before counting"
    ),
    config_file: Optional[Path] = CONFIG_OPTION,
    verbose: int = VERBOSE_OPTION,
) -> None:
    """Write a frequency table."""
    setup_logging(verbose)
    config = PipelineConfig.load(config_file)
    tokens = _load_tokens(tokens_csv, config, remove)
    dfm = build_dfm(tokens, group_pattern=config.group_pattern, sep=config.sep)
    table = frequency_table(dfm, by_group=by_group, n=top)
    table.write_csv(out_csv)
    typer.echo(f"{table.height} terms -> {out_csv}")


if __name__ == "__main__":
    app()
