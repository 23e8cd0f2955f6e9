from collections import OrderedDict
from typing import NamedTuple

import polars as pl
from pydantic import BaseModel, field_validator

# Token-record table layout shared by the annotator, the combiner and the
# CSV reader.
TOKEN_SCHEMA = OrderedDict(
    [
        ("doc_id", pl.String),
        ("sentence_id", pl.UInt32),
        ("token_id", pl.UInt32),
        ("token", pl.String),
        ("lemma", pl.String),
        ("upos", pl.String),
        ("xpos", pl.String),
        ("head_token_id", pl.UInt32),
        ("dep_rel", pl.String),
    ]
)

# spaCy token attribute -> token-record column.
TOKEN_FIELD_MAP = {
    "text": "token",
    "lemma_": "lemma",
    "pos_": "upos",
    "tag_": "xpos",
    "dep_": "dep_rel",
}

TAG_COLUMNS = ("upos", "xpos")


class Document(BaseModel):
    doc_id: str
    type: str
    text: str

    @field_validator("doc_id", "type")
    @classmethod
    def must_not_be_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("doc_id and type must be non-empty")
        return v


class TokenRecord(NamedTuple):
    doc_id: str
    sentence_id: int
    token_id: int
    token: str
    lemma: str
    upos: str
    xpos: str
    head_token_id: int
    dep_rel: str


def empty_token_table() -> pl.DataFrame:
    return pl.DataFrame(schema=TOKEN_SCHEMA)


def token_table(records: list[TokenRecord]) -> pl.DataFrame:
    """Build a token-record table with the fixed `TOKEN_SCHEMA`."""
    if not records:
        return empty_token_table()
    return pl.DataFrame(records, schema=TOKEN_SCHEMA, orient="row")


def validate_token_table(table: pl.DataFrame) -> pl.DataFrame:
    """
    Check that `table` has exactly the token-record columns and dtypes.

    >>> validate_token_table(empty_token_table()).columns[:3]
    ['doc_id', 'sentence_id', 'token_id']
    >>> validate_token_table(pl.DataFrame({"doc_id": ["a"]}))
    Traceback (most recent call last):
    ...
    ValueError: Invalid token table: expected columns ['doc_id', 'sentence_id', 'token_id', 'token', 'lemma', 'upos', 'xpos', 'head_token_id', 'dep_rel'], got ['doc_id']
    """
    if table.collect_schema() != TOKEN_SCHEMA:
        raise ValueError(
            f"Invalid token table: expected columns {list(TOKEN_SCHEMA)}, got {table.columns}"
        )
    return table


def coerce_token_table(table: pl.DataFrame) -> pl.DataFrame:
    """Select and cast the token-record columns, e.g. after reading a CSV."""
    missing = set(TOKEN_SCHEMA) - set(table.columns)
    if missing:
        raise ValueError(f"Token table missing required columns: {sorted(missing)}")
    return table.select(
        [pl.col(name).cast(dtype) for name, dtype in TOKEN_SCHEMA.items()]
    ).with_columns(
        [
            pl.col(name).fill_null("")
            for name, dtype in TOKEN_SCHEMA.items()
            if dtype == pl.String
        ]
    )
