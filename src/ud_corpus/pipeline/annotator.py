from collections.abc import Sequence

import polars as pl
from spacy.language import Language
from spacy.tokens import Doc
from tqdm import tqdm

from ud_corpus.schemas import TOKEN_FIELD_MAP, TokenRecord, token_table


def _sentences(doc: Doc):
    if doc.has_annotation("SENT_START") or doc.has_annotation("DEP"):
        return list(doc.sents)
    return [doc[:]] if len(doc) else []


def doc_to_records(doc: Doc, doc_id: str) -> list[TokenRecord]:
    """
    Flatten a parsed Doc into token records.

    Sentence ids count from 1 within the document and token ids from 1 within
    the sentence. A token that is its own head, or whose head lies outside
    its sentence, is a root and gets head id 0. Whitespace-only tokens are
    dropped.

    >>> import spacy
    >>> nlp = spacy.blank("zh")
    >>> nlp.add_pipe("sentencizer")  # doctest: +ELLIPSIS
    <...>
    >>> records = doc_to_records(nlp("你好。再见。"), "t1")
    >>> [(r.sentence_id, r.token_id, r.token, r.head_token_id) for r in records]
    [(1, 1, '你', 0), (1, 2, '好', 0), (1, 3, '。', 0), (2, 1, '再', 0), (2, 2, '见', 0), (2, 3, '。', 0)]
    """
    records: list[TokenRecord] = []
    for sentence_id, sent in enumerate(_sentences(doc), start=1):
        tokens = [t for t in sent if not t.is_space]
        token_ids = {t.i: n for n, t in enumerate(tokens, start=1)}
        for token in tokens:
            head_token_id = token_ids.get(token.head.i, 0)
            if token.head.i == token.i:
                head_token_id = 0
            fields = {
                column: getattr(token, attr) or ""
                for attr, column in TOKEN_FIELD_MAP.items()
            }
            records.append(
                TokenRecord(
                    doc_id=doc_id,
                    sentence_id=sentence_id,
                    token_id=token_ids[token.i],
                    head_token_id=head_token_id,
                    **fields,
                )
            )
    return records


def annotate_texts(
    nlp: Language,
    doc_ids: Sequence[str],
    texts: Sequence[str],
    batch_size: int = 50,
    progress: bool = False,
) -> pl.DataFrame:
    """
    Run `nlp` over `texts` and return the token-record table in input order.
    """
    if len(doc_ids) != len(texts):
        raise ValueError(
            f"Got {len(doc_ids)} document ids for {len(texts)} texts"
        )
    records: list[TokenRecord] = []
    docs = nlp.pipe(zip(texts, doc_ids), as_tuples=True, batch_size=batch_size)
    for doc, doc_id in tqdm(docs, total=len(texts), desc="Annotate", disable=not progress):
        records.extend(doc_to_records(doc, doc_id))
    return token_table(records)
